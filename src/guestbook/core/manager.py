# guestbook/core/manager.py

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine, Dict, List, Optional, Sequence, Set, Tuple

from ..protocol.enums import EntryState
from ..protocol.errors import (
    AuthorizationError,
    GuestbookError,
    NotYetConfirmed,
    RemoteLogError,
    ValidationError,
)
from ..protocol.models import Entry, ErrorInfo, NewRecord, RemoteRecord
from ..protocol.validators import validate_submission
from ..transport.base import RemoteLog
from ..utils.id_gen import generate_local_id
from ..utils.timestamps import epoch_seconds
from .store import EntryStore

logger = logging.getLogger("guestbook.manager")

SnapshotListener = Callable[[Tuple[Entry, ...]], None]


class LifecycleManager:
    """
    Entry lifecycle orchestration (asyncio, single loop).

    Responsibilities:
      - submit:    validate, insert optimistically, append remotely in the background
      - reconcile: merge the remote log's authoritative list into the store
      - retract:   check the shared secret locally, then delete remotely
      - retry / discard for entries whose remote insert failed
      - notify listeners with a fresh snapshot after every mutation

    Remote calls are the only suspension points. Store mutations happen
    between awaits, so they never interleave.
    """

    def __init__(
        self,
        remote: RemoteLog,
        *,
        store: Optional[EntryStore] = None,
        clock: Optional[Callable[[], float]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        max_author_length: Optional[int] = None,
        max_body_length: Optional[int] = None,
        listeners: Optional[Sequence[SnapshotListener]] = None,
    ) -> None:
        self._remote = remote
        self._store = store or EntryStore()
        self._clock = clock or epoch_seconds
        self._new_id = id_factory or generate_local_id
        self._max_author_length = max_author_length
        self._max_body_length = max_body_length
        self._listeners: List[SnapshotListener] = list(listeners or [])
        self._log = logger

        self._tasks: Set[asyncio.Task] = set()
        # local id -> remote id returned by insert, until a list confirms it
        self._acknowledged: Dict[str, str] = {}
        # local ids whose remote insert has not resolved yet
        self._in_flight: Set[str] = set()
        # remote id -> reconcile counter at the moment our delete succeeded
        self._retracted: Dict[str, int] = {}

        self._reconcile_issued = 0
        self._reconcile_applied = 0

    @classmethod
    def from_settings(cls, remote: Optional[RemoteLog] = None, settings=None, **kwargs) -> LifecycleManager:
        """
        Build a manager from GuestbookSettings (env driven).
        """
        from .settings import get_settings
        from ..transport import build_remote_log

        settings = settings or get_settings()
        return cls(
            remote or build_remote_log(settings.remote),
            max_author_length=settings.validation.max_author_length,
            max_body_length=settings.validation.max_body_length,
            **kwargs,
        )

    # ===========================================================
    # Read side
    # ===========================================================
    @property
    def store(self) -> EntryStore:
        return self._store

    @property
    def remote(self) -> RemoteLog:
        return self._remote

    def snapshot(self) -> Tuple[Entry, ...]:
        return self._store.snapshot()

    @property
    def busy(self) -> bool:
        """True while background inserts or follow-up reconciles are running."""
        return bool(self._tasks)

    def subscribe(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ===========================================================
    # Commands
    # ===========================================================
    def submit(self, author: str, body: str, secret: str) -> str:
        """
        Insert a new entry optimistically and append it to the remote log
        in the background. Returns the local id without waiting.

        Must be called from a running event loop.
        """
        record = validate_submission(
            author,
            body,
            secret,
            max_author_length=self._max_author_length,
            max_body_length=self._max_body_length,
        )
        loop = asyncio.get_running_loop()

        local_id = self._new_id()
        entry = Entry(
            local_id=local_id,
            author=record.author,
            body=record.body,
            secret=record.secret,
            created_at=self._clock(),
        )
        self._store.insert_optimistic(entry)
        self._log.debug("submit %s by %r (pending)", local_id, record.author)
        self._notify()

        self._in_flight.add(local_id)
        self._spawn(loop, self._insert(local_id, record))
        return local_id

    async def reconcile(self) -> bool:
        """
        Merge the remote log's current list into the store.

        Returns False when the reply was dropped because a newer reconcile
        had already been applied.
        """
        self._reconcile_issued += 1
        seq = self._reconcile_issued

        records = await self._remote.list_ordered_by_creation_descending()

        if seq < self._reconcile_applied:
            self._log.debug(
                "Dropping stale reconcile #%d (already applied #%d)",
                seq,
                self._reconcile_applied,
            )
            return False

        self._reconcile_applied = seq
        self._merge(records, seq)
        self._notify()
        return True

    async def retract(self, local_id: str, candidate_secret: str) -> Entry:
        """
        Delete a confirmed entry after checking its secret.

        The secret check happens before any remote call. On remote failure
        the entry is left untouched and the error propagates. Returns the
        entry in its final DELETED state.
        """
        entry = self._store.get(local_id)

        if not entry.matches_secret(candidate_secret):
            self._log.info("Retract of %s rejected: secret mismatch", local_id)
            raise AuthorizationError("Secret does not match")

        if entry.state is not EntryState.CONFIRMED or entry.remote_id is None:
            raise NotYetConfirmed(
                f"Entry '{local_id}' is not confirmed by the remote log yet"
            )

        remote_id = entry.remote_id
        try:
            await self._remote.delete(remote_id)
        except GuestbookError as ex:
            self._log.warning("Remote delete of %s (%s) failed: %s", local_id, remote_id, ex)
            raise

        self._retracted[remote_id] = self._reconcile_issued

        # A reconcile may have removed it while the delete was in flight.
        if local_id in self._store:
            self._store.remove(local_id)
            self._notify()

        self._log.info("Retracted %s (%s)", local_id, remote_id)
        return entry.transition(EntryState.DELETED)

    def retry(self, local_id: str) -> None:
        """
        Re-issue the remote insert for an entry whose insert failed.
        """
        entry = self._store.get(local_id)
        if entry.state is not EntryState.ERRORED:
            raise ValidationError(f"Entry '{local_id}' has no failed insert to retry")
        loop = asyncio.get_running_loop()

        self._store.update(entry.transition(EntryState.PENDING))
        self._notify()

        record = NewRecord(author=entry.author, body=entry.body, secret=entry.secret)
        self._in_flight.add(local_id)
        self._spawn(loop, self._insert(local_id, record))

    def discard(self, local_id: str) -> Entry:
        """
        Drop an unconfirmed entry locally. Never touches the remote log;
        confirmed entries must go through retract().
        """
        entry = self._store.get(local_id)
        if not entry.state.is_unconfirmed:
            raise ValidationError(
                f"Entry '{local_id}' is confirmed; retract it with its secret instead"
            )
        if local_id in self._in_flight or local_id in self._acknowledged:
            # The record may still reach the log and come back via reconcile.
            self._log.info("Discarding %s while its remote insert is outstanding", local_id)

        self._store.remove(local_id)
        self._acknowledged.pop(local_id, None)
        self._notify()
        return entry

    async def drain(self) -> None:
        """
        Wait for every background insert and follow-up reconcile.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        await self._remote.close()

    # ===========================================================
    # Background work
    # ===========================================================
    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Coroutine) -> None:
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _insert(self, local_id: str, record: NewRecord) -> None:
        try:
            remote_id = await self._remote.insert(record)
        except Exception as ex:
            if isinstance(ex, RemoteLogError):
                self._log.warning("Remote insert of %s failed: %s", local_id, ex)
            else:
                self._log.exception("Remote insert of %s failed unexpectedly", local_id)
            self._mark_errored(local_id, ErrorInfo.from_exception(ex))
            return
        finally:
            self._in_flight.discard(local_id)

        self._acknowledge(local_id, remote_id)

        try:
            await self.reconcile()
        except RemoteLogError as ex:
            # The entry stays pending; the next reconcile picks it up.
            self._log.warning("Reconcile after insert of %s failed: %s", local_id, ex)
        except Exception:
            self._log.exception("Reconcile after insert of %s failed unexpectedly", local_id)

    def _acknowledge(self, local_id: str, remote_id: str) -> None:
        if local_id not in self._store:
            self._log.info("Insert of discarded entry %s landed as %s", local_id, remote_id)
            return

        entry = self._store.get(local_id)
        if entry.remote_id is not None:
            if entry.remote_id != remote_id:
                self._log.warning(
                    "Entry %s confirmed as %s but insert returned %s",
                    local_id,
                    entry.remote_id,
                    remote_id,
                )
            return

        self._acknowledged[local_id] = remote_id
        self._log.debug("Insert of %s acknowledged as %s", local_id, remote_id)

    def _mark_errored(self, local_id: str, error: ErrorInfo) -> None:
        if local_id not in self._store:
            return
        entry = self._store.get(local_id)
        if entry.state is not EntryState.PENDING:
            return
        self._store.update(entry.transition(EntryState.ERRORED, error=error))
        self._notify()

    # ===========================================================
    # Merge
    # ===========================================================
    def _merge(self, records: Sequence[RemoteRecord], seq: int) -> None:
        # Our own insert landed on a record that has since been retracted
        # through a stand-in entry; nothing will ever confirm it.
        resolved = [
            local_id
            for local_id, remote_id in self._acknowledged.items()
            if remote_id in self._retracted
        ]
        for local_id in resolved:
            del self._acknowledged[local_id]
            self._log.info("Entry %s resolved: its record was retracted", local_id)

        # Forget a retracted id once a list issued after the delete omits it.
        listed = {r.remote_id for r in records}
        for remote_id, at in list(self._retracted.items()):
            if seq > at and remote_id not in listed:
                del self._retracted[remote_id]

        unique: List[RemoteRecord] = []
        seen: Set[str] = set()
        for record in records:
            if record.remote_id in seen or record.remote_id in self._retracted:
                continue
            seen.add(record.remote_id)
            unique.append(record)

        current = self._store.snapshot()
        by_remote = {e.remote_id: e for e in current if e.remote_id is not None}
        by_ack = {
            remote_id: self._store.get(local_id)
            for local_id, remote_id in self._acknowledged.items()
            if local_id in self._store
        }

        # An acknowledged entry wins over a stand-in created for the same
        # record; the stand-in is confirmed, so replace_all drops it.
        matched: List[Optional[Entry]] = [
            by_ack.get(r.remote_id) or by_remote.get(r.remote_id) for r in unique
        ]

        # Pending entries whose insert has not answered yet may already be
        # listed; pair them with identical content, oldest with oldest.
        claimable = [
            e
            for e in reversed(current)
            if e.state is EntryState.PENDING
            and e.remote_id is None
            and e.local_id in self._in_flight
            and e.local_id not in self._acknowledged
        ]
        if claimable:
            for i in reversed(range(len(unique))):
                if matched[i] is not None:
                    continue
                record = unique[i]
                for j, candidate in enumerate(claimable):
                    if (candidate.author, candidate.body, candidate.secret) == record.content_key():
                        matched[i] = claimable.pop(j)
                        break

        merged: List[Entry] = []
        for record, entry in zip(unique, matched):
            if entry is None:
                merged.append(
                    Entry(
                        local_id=self._new_id(),
                        author=record.author,
                        body=record.body,
                        secret=record.secret,
                        created_at=record.created_at,
                        state=EntryState.CONFIRMED,
                        remote_id=record.remote_id,
                    )
                )
                continue

            if entry.state is not EntryState.CONFIRMED:
                self._log.debug("Entry %s confirmed as %s", entry.local_id, record.remote_id)
            self._acknowledged.pop(entry.local_id, None)
            merged.append(
                entry.transition(
                    EntryState.CONFIRMED,
                    remote_id=record.remote_id,
                    created_at=record.created_at,
                )
            )

        self._store.replace_all(merged, resolved=resolved)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self._store.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as ex:
                self._log.exception("Snapshot listener failed: %s", ex)
