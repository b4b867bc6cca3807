"""
Error taxonomy for record store operations
Each error carries the HTTP status the API layer answers with.
"""


class RecordStoreError(Exception):
    """Base class for errors raised by the record store and its services"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RecordStoreError):
    """Missing or malformed input (id, apiKey, note, upload...)"""

    status_code = 400


class AuthorizationError(RecordStoreError):
    """Master key or API key mismatch"""

    status_code = 403


class NotFoundError(RecordStoreError):
    """Lookup by id found no record"""

    status_code = 404


class StorageError(RecordStoreError):
    """Database or filesystem failure"""

    status_code = 500
