from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from .enums import EntryState, ErrorCode


# -------------------------
# ERRORS
# -------------------------

@dataclass(frozen=True)
class ErrorInfo:
    code: ErrorCode
    message: str
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, ex: BaseException) -> ErrorInfo:
        code = getattr(ex, "code", None) or ErrorCode.INTERNAL_ERROR
        return cls(
            code=ErrorCode(code),
            message=str(ex) or type(ex).__name__,
            retryable=bool(getattr(ex, "retryable", False)),
            details={"exception": type(ex).__name__},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": dict(self.details),
        }


# -------------------------
# ENTRIES
# -------------------------

@dataclass(frozen=True)
class Entry:
    """
    One guestbook message as seen by this client.

    Entries are immutable; lifecycle transitions produce a new Entry with
    the same local_id (see transition()).
    """

    local_id: str
    author: str
    body: str
    secret: str
    created_at: float
    state: EntryState = EntryState.PENDING
    remote_id: Optional[str] = None
    error: Optional[ErrorInfo] = None

    def transition(
        self,
        state: EntryState,
        *,
        remote_id: Optional[str] = None,
        created_at: Optional[float] = None,
        error: Optional[ErrorInfo] = None,
    ) -> Entry:
        return replace(
            self,
            state=state,
            remote_id=remote_id if remote_id is not None else self.remote_id,
            created_at=created_at if created_at is not None else self.created_at,
            error=error,
        )

    def matches_secret(self, candidate: str) -> bool:
        # Plain equality: no trimming, no case folding, no hashing.
        return candidate == self.secret

    def to_dict(self) -> Dict[str, Any]:
        """View dict for presentation. The secret is never included."""
        return {
            "localId": self.local_id,
            "remoteId": self.remote_id,
            "author": self.author,
            "body": self.body,
            "createdAt": self.created_at,
            "state": self.state.value,
            "error": self.error.to_dict() if self.error else None,
        }


# -------------------------
# REMOTE LOG RECORDS
# -------------------------

@dataclass(frozen=True)
class NewRecord:
    """Insert payload. The remote log assigns remote_id and created_at."""

    author: str
    body: str
    secret: str

    def to_dict(self) -> Dict[str, Any]:
        return {"author": self.author, "body": self.body, "secret": self.secret}


@dataclass(frozen=True)
class RemoteRecord:
    remote_id: str
    author: str
    body: str
    secret: str
    created_at: float

    def content_key(self) -> tuple:
        return (self.author, self.body, self.secret)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "remoteId": self.remote_id,
            "author": self.author,
            "body": self.body,
            "secret": self.secret,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RemoteRecord:
        return cls(
            remote_id=str(data["remoteId"]),
            author=data["author"],
            body=data["body"],
            secret=data["secret"],
            created_at=float(data["createdAt"]),
        )
