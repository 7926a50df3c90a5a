from __future__ import annotations

"""
Remote log interface.

This defines the boundary between the lifecycle manager and whatever
stores the shared guestbook:

    NewRecord   → insert  → remote id
    (nothing)   → list    → [RemoteRecord], newest first
    remote id   → delete  → (nothing)

Remote logs DO NOT:
  - know about local ids or entry states
  - check secrets (authorization happens in the manager, before delete)
  - order by anything except their own created_at

Remote logs MAY be eventually consistent: a record returned by insert()
is allowed to be missing from the next list call.

Failures are reported with the remote error taxonomy:
  - StoreUnavailable: unreachable, timed out, internal failure
  - WriteRejected:    insert refused
  - NotFound:         delete of an unknown remote id
"""

from abc import ABC, abstractmethod
from typing import List

from guestbook.protocol.models import NewRecord, RemoteRecord


class RemoteLog(ABC):
    """
    Abstract base class for all remote logs.

    All operations are coroutines; the manager awaits them and never holds
    local state locked across the await.
    """

    @abstractmethod
    async def insert(self, record: NewRecord) -> str:
        """
        Append a record. The log assigns created_at and returns the remote id.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_ordered_by_creation_descending(self) -> List[RemoteRecord]:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, remote_id: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections/handles. Default: nothing to release."""
        return None
