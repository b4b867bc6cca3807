"""
Entry point for the ID Tracker service
"""

import logging
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from id_tracker.app import create_app
from id_tracker.config.settings import get_settings

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()
app = create_app(settings)

if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting ID Tracker on port {settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
