"""
Authentication utilities for API endpoints
"""

import hmac
import logging
from typing import Optional

from fastapi import Request

from id_tracker.utils.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

MASTER_KEY_HEADER = "x-master-key"
API_KEY_HEADER = "x-api-key"


def secrets_match(supplied: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time comparison; empty values never match"""
    if not supplied or not expected:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def extract_master_key(request: Request, body_value: Optional[str] = None) -> Optional[str]:
    """Master key from the body, then the query string, then the X-Master-Key header"""
    return body_value or request.query_params.get("masterKey") or request.headers.get(MASTER_KEY_HEADER)


def extract_api_key(request: Request, body_value: Optional[str] = None) -> Optional[str]:
    """API key from the body, then the X-API-Key header"""
    return body_value or request.headers.get(API_KEY_HEADER)


class AccessControl:
    """Single shared master key check for administrative operations"""

    def __init__(self, master_key: str):
        self._master_key = master_key

    def is_master(self, supplied: Optional[str]) -> bool:
        return secrets_match(supplied, self._master_key)

    def require_master(self, request: Request, body_value: Optional[str] = None):
        """Raise AuthorizationError unless the request carries the master key"""
        if not self.is_master(extract_master_key(request, body_value)):
            logger.warning(f"AUTH: master key rejected for {request.method} {request.url.path}")
            raise AuthorizationError("Invalid master key")
