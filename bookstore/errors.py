"""Error types raised by the catalog client."""
from typing import Optional


class BookstoreError(Exception):
    """Base error for user-visible, non-fatal failures."""


class ValidationError(BookstoreError):
    """Bad local input; no request was sent."""


class NetworkError(BookstoreError):
    """Transport-level failure talking to the service or object store."""


class InvalidResponse(BookstoreError):
    """The service answered but the payload is malformed."""


class ServiceError(BookstoreError):
    """Non-2xx answer from the service, message kept verbatim."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFound(ServiceError):
    """Remote object or catalog entry does not exist."""


class CatalogReferenceError(BookstoreError):
    """Reference is not part of the locally held catalog."""


class Busy(BookstoreError):
    """Another operation is already in flight."""
