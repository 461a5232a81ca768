"""
Exceptions raised by the vocabulary scheduler.

Routers translate them into HTTP errors; services never catch them.
"""


class SRSError(Exception):
    """Base exception for the scheduler. ``code`` is the short API detail."""

    code = "srs_error"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        if code is not None:
            self.code = code
        super().__init__(message or self.code)


class ValidationError(SRSError):
    """Raised when a request is rejected before touching the store."""

    code = "invalid_request"


class NotFoundError(SRSError):
    """Raised when a referenced vocabulary entry does not exist."""

    code = "not_found"


class StoreError(SRSError):
    """Raised when the progress store fails; safe for the caller to retry."""

    code = "store_unavailable"


class ProgressConflictError(StoreError):
    """Raised when a concurrent grading already replaced the record we read."""

    code = "progress_conflict"
