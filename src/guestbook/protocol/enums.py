from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "validation_error"
    DUPLICATE_LOCAL_ID = "duplicate_local_id"
    NOT_FOUND = "not_found"
    AUTHORIZATION_ERROR = "authorization_error"
    NOT_YET_CONFIRMED = "not_yet_confirmed"
    STORE_ERROR = "store_error"
    STORE_UNAVAILABLE = "store_unavailable"
    WRITE_REJECTED = "write_rejected"
    INTERNAL_ERROR = "internal_error"


class EntryState(str, Enum):
    """Entry lifecycle state. ERRORED is the failed-insert branch of PENDING."""

    PENDING = "pending"
    ERRORED = "errored"
    CONFIRMED = "confirmed"
    DELETED = "deleted"

    @property
    def is_unconfirmed(self) -> bool:
        return self in (EntryState.PENDING, EntryState.ERRORED)
