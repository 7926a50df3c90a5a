from .core.store import EntryStore
from .core.manager import LifecycleManager
from .transport.base import RemoteLog
from .transport.inmemory import InMemoryRemoteLog
from .transport.jsonl import JsonlRemoteLog
from .transport.http_remote import HTTPRemoteLog
from .protocol import (
    Entry,
    EntryState,
    ErrorInfo,
    NewRecord,
    RemoteRecord,
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

__all__ = [
    "EntryStore",
    "LifecycleManager",
    "RemoteLog",
    "InMemoryRemoteLog",
    "JsonlRemoteLog",
    "HTTPRemoteLog",
    "Entry",
    "EntryState",
    "ErrorInfo",
    "NewRecord",
    "RemoteRecord",
    "GuestbookError",
    "ValidationError",
    "DuplicateLocalId",
    "NotFound",
    "AuthorizationError",
    "NotYetConfirmed",
    "RemoteLogError",
    "StoreUnavailable",
    "WriteRejected",
]
