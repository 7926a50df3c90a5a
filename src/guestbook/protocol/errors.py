from typing import Optional
from .enums import ErrorCode


class GuestbookError(Exception):
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code or type(self).code


class ValidationError(GuestbookError):
    """Raised when submitted input is rejected before any mutation."""

    code = ErrorCode.VALIDATION_ERROR


class DuplicateLocalId(GuestbookError):
    """Raised when a local id is already present in (or retired from) the store."""

    code = ErrorCode.DUPLICATE_LOCAL_ID


class NotFound(GuestbookError):
    """Raised for a stale local reference or an unknown remote id."""

    code = ErrorCode.NOT_FOUND


class AuthorizationError(GuestbookError):
    """Raised when a retract is attempted with the wrong secret."""

    code = ErrorCode.AUTHORIZATION_ERROR


class NotYetConfirmed(GuestbookError):
    """Raised when retracting an entry the remote log has not confirmed."""

    code = ErrorCode.NOT_YET_CONFIRMED


class RemoteLogError(GuestbookError):
    """Base class for failures reported by a remote log."""

    code = ErrorCode.STORE_ERROR
    retryable = False


class StoreUnavailable(RemoteLogError):
    """Remote log unreachable, timed out or failing."""

    code = ErrorCode.STORE_UNAVAILABLE
    retryable = True


class WriteRejected(RemoteLogError):
    """Remote log refused the insert."""

    code = ErrorCode.WRITE_REJECTED
