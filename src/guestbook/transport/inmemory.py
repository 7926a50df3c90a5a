from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Iterable, List, Optional

from guestbook.protocol.errors import GuestbookError, NotFound
from guestbook.protocol.models import NewRecord, RemoteRecord
from guestbook.utils.timestamps import epoch_seconds

from .base import RemoteLog

logger = logging.getLogger(__name__)

OPERATIONS = ("insert", "list", "delete")


@dataclass
class _Stored:
    record: RemoteRecord
    visible_from: int  # first list call (1-based) that may return it


class InMemoryRemoteLog(RemoteLog):
    """
    Process-local remote log.

    Used as the default backend for tests and demos. It models the
    properties the manager must cope with:

      - list_lag:  a fresh insert stays invisible to this many list calls
      - fail_next: queue an exception for the next call of an operation
      - pause/resume: hold calls of an operation until released, to force
        out-of-order completion
      - call counters for assertions
    """

    def __init__(
        self,
        *,
        list_lag: int = 0,
        clock: Optional[Callable[[], float]] = None,
        id_prefix: str = "r",
    ) -> None:
        self._records: List[_Stored] = []
        self._list_lag = list_lag
        self._clock = clock or epoch_seconds
        self._ids = itertools.count(1)
        self._id_prefix = id_prefix
        self._last_created_at: Optional[float] = None
        self._failures: Dict[str, Deque[GuestbookError]] = {op: deque() for op in OPERATIONS}
        self._gates: Dict[str, asyncio.Event] = {}

        self.calls: Dict[str, int] = {op: 0 for op in OPERATIONS}
        self.deleted: List[str] = []

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------
    def seed(self, records: Iterable[RemoteRecord]) -> None:
        """Preload records, visible immediately."""
        for record in records:
            self._records.append(_Stored(record, visible_from=0))
            if self._last_created_at is None or record.created_at > self._last_created_at:
                self._last_created_at = record.created_at

    def fail_next(self, operation: str, error: GuestbookError) -> None:
        self._failures[operation].append(error)

    def pause(self, operation: str) -> None:
        self._gates[operation] = asyncio.Event()

    def resume(self, operation: str) -> None:
        gate = self._gates.pop(operation, None)
        if gate is not None:
            gate.set()

    @property
    def records(self) -> List[RemoteRecord]:
        """Every stored record regardless of visibility, newest first."""
        return self._descending(s.record for s in self._records)

    # ------------------------------------------------------------------
    # RemoteLog API
    # ------------------------------------------------------------------
    async def insert(self, record: NewRecord) -> str:
        self.calls["insert"] += 1
        await self._enter("insert")

        remote_id = f"{self._id_prefix}{next(self._ids)}"
        stored = RemoteRecord(
            remote_id=remote_id,
            author=record.author,
            body=record.body,
            secret=record.secret,
            created_at=self._next_created_at(),
        )
        visible_from = self.calls["list"] + 1 + self._list_lag
        self._records.append(_Stored(stored, visible_from=visible_from))
        logger.debug("insert %s visible from list call %d", remote_id, visible_from)
        return remote_id

    async def list_ordered_by_creation_descending(self) -> List[RemoteRecord]:
        self.calls["list"] += 1
        call_no = self.calls["list"]
        # Captured before suspending: a paused list returns stale data.
        view = self._descending(
            s.record for s in self._records if s.visible_from <= call_no
        )
        await self._enter("list")
        return view

    async def delete(self, remote_id: str) -> None:
        self.calls["delete"] += 1
        await self._enter("delete")

        for i, stored in enumerate(self._records):
            if stored.record.remote_id == remote_id:
                del self._records[i]
                self.deleted.append(remote_id)
                return
        raise NotFound(f"Remote log has no record '{remote_id}'")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _enter(self, operation: str) -> None:
        gate = self._gates.get(operation)
        if gate is not None:
            await gate.wait()
        else:
            # Always suspend once so callers observe real asynchrony.
            await asyncio.sleep(0)

        failures = self._failures[operation]
        if failures:
            raise failures.popleft()

    def _next_created_at(self) -> float:
        now = self._clock()
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + 1e-6
        self._last_created_at = now
        return now

    @staticmethod
    def _descending(records: Iterable[RemoteRecord]) -> List[RemoteRecord]:
        return sorted(records, key=lambda r: r.created_at, reverse=True)
