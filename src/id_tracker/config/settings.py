"""
Configuration settings for the ID Tracker service
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

CONFLICT_POLICIES = ("ignore", "update")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass
class Settings:
    """Runtime configuration, built once at startup and passed to the app"""

    master_key: str = ""
    database_url: Optional[str] = None
    store_path: str = "data/ids.json"

    # Key registry sources
    api_keys_file: Optional[str] = "keys.json"
    api_keys_json: Optional[str] = None
    keys_poll_interval: float = 0.0

    # Record behaviour
    conflict_policy: str = "ignore"
    require_known_api_key: bool = True
    search_limit: int = 500
    default_page_size: int = 50
    max_page_size: int = 500
    max_import_bytes: int = 10 * 1024 * 1024

    # HTTP
    port: int = 10000
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from environment variables"""
        origins = os.getenv("ALLOWED_ORIGINS", "*")
        return cls(
            master_key=os.getenv("MASTER_KEY", ""),
            database_url=os.getenv("DATABASE_URL") or None,
            store_path=os.getenv("STORE_PATH", "data/ids.json"),
            api_keys_file=os.getenv("API_KEYS_FILE", "keys.json") or None,
            api_keys_json=os.getenv("API_KEYS") or None,
            keys_poll_interval=_env_float("KEYS_POLL_INTERVAL", 0.0),
            conflict_policy=os.getenv("CONFLICT_POLICY", "ignore").strip().lower(),
            require_known_api_key=_env_bool("REQUIRE_KNOWN_API_KEY", True),
            search_limit=_env_int("SEARCH_LIMIT", 500),
            default_page_size=_env_int("DEFAULT_PAGE_SIZE", 50),
            max_page_size=_env_int("MAX_PAGE_SIZE", 500),
            max_import_bytes=_env_int("MAX_IMPORT_BYTES", 10 * 1024 * 1024),
            port=_env_int("PORT", 10000),
            allowed_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
        )

    @property
    def backend(self) -> str:
        """Storage backend selected by the configuration"""
        return "postgres" if self.database_url else "json"

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if not self.master_key:
            errors.append("MASTER_KEY environment variable is required")
        if self.conflict_policy not in CONFLICT_POLICIES:
            errors.append(f"CONFLICT_POLICY must be one of {', '.join(CONFLICT_POLICIES)}")
        if self.search_limit < 1:
            errors.append("SEARCH_LIMIT must be positive")
        if self.max_page_size < 1:
            errors.append("MAX_PAGE_SIZE must be positive")
        if not 1 <= self.default_page_size <= self.max_page_size:
            errors.append("DEFAULT_PAGE_SIZE must be between 1 and MAX_PAGE_SIZE")
        if self.max_import_bytes < 1:
            errors.append("MAX_IMPORT_BYTES must be positive")
        if self.keys_poll_interval < 0:
            errors.append("KEYS_POLL_INTERVAL cannot be negative")
        if not self.database_url and not self.store_path:
            errors.append("Either DATABASE_URL or STORE_PATH must be set")

        return errors


def get_settings() -> Settings:
    """Get validated settings from the environment"""
    settings = Settings.from_env()
    errors = settings.validate()

    if errors:
        raise ValueError(f"Configuration errors: {'; '.join(errors)}")

    logger.info(f"Storage backend: {settings.backend}")
    logger.info(f"Conflict policy: {settings.conflict_policy}")
    if not settings.require_known_api_key:
        logger.warning("REQUIRE_KNOWN_API_KEY disabled - unknown API keys are stored verbatim as submitter names")

    return settings
