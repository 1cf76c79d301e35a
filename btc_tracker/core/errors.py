"""Error taxonomy shared by the ledger client, aggregator, repository and API."""

from typing import Any, Dict, Optional


class TrackerError(Exception):
    """Base class for every error raised by the tracker."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ValidationError(TrackerError):
    """Malformed address or missing required input."""
    pass


class NotFoundError(TrackerError):
    """Address is not among the caller's tracked addresses."""
    pass


class AddressExistsError(TrackerError):
    """Address is already tracked for this user."""
    pass


class UpstreamError(TrackerError):
    """Remote ledger fetch failed (timeout, non-2xx status or transport failure)."""

    def __init__(self, message: str,
                 status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.status_code = status_code


class StorageError(TrackerError):
    """Address repository operation failed."""
    pass


class InternalError(TrackerError):
    """Anything unexpected."""
    pass
