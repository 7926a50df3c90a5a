from .enums import EntryState, ErrorCode
from .errors import (
    GuestbookError,
    ValidationError,
    DuplicateLocalId,
    NotFound,
    AuthorizationError,
    NotYetConfirmed,
    RemoteLogError,
    StoreUnavailable,
    WriteRejected,
)
from .models import Entry, ErrorInfo, NewRecord, RemoteRecord

__all__ = [
    "EntryState",
    "ErrorCode",
    "GuestbookError",
    "ValidationError",
    "DuplicateLocalId",
    "NotFound",
    "AuthorizationError",
    "NotYetConfirmed",
    "RemoteLogError",
    "StoreUnavailable",
    "WriteRejected",
    "Entry",
    "ErrorInfo",
    "NewRecord",
    "RemoteRecord",
]
