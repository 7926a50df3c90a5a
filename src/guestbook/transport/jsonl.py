"""
File-backed remote log.

One JSONL file, append-only. Every line is either an insert or a delete
operation; the visible log is the inserts that were never deleted.

Rules:
- Writes are flushed and fsynced before the call returns
- Lines are hash chained (prev_hash/entry_hash) so tampering and torn
  writes are detectable with verify_integrity()
- Thread-safe: blocking file IO runs in worker threads via asyncio.to_thread
- A corrupt tail line stops replay and is cut off on open, so later
  appends start on a clean line; everything before it is kept
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from guestbook.protocol.errors import NotFound, StoreUnavailable, WriteRejected
from guestbook.protocol.models import NewRecord, RemoteRecord
from guestbook.utils.id_gen import generate_ulid
from guestbook.utils.timestamps import epoch_seconds, now_iso

from .base import RemoteLog

logger = logging.getLogger(__name__)

OP_INSERT = "insert"
OP_DELETE = "delete"


def _hash_line(entry: Dict[str, Any]) -> str:
    data = json.dumps(entry, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


class JsonlRemoteLog(RemoteLog):
    """
    Append-only JSONL log on local disk.

    Usage:
        log = JsonlRemoteLog(".guestbook/log.jsonl")
        remote_id = await log.insert(NewRecord("Ann", "Hi", "pw1"))
    """

    def __init__(
        self,
        path: str,
        *,
        sync: bool = True,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._sync = sync
        self._clock = clock or epoch_seconds
        self._lock = threading.Lock()

        self._seq = 0
        self._last_hash: Optional[str] = None
        self._last_created_at: Optional[float] = None
        self._live: Dict[str, RemoteRecord] = {}

        self._resume_from_existing()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # RemoteLog API
    # ------------------------------------------------------------------
    async def insert(self, record: NewRecord) -> str:
        return await asyncio.to_thread(self._insert_blocking, record)

    async def list_ordered_by_creation_descending(self) -> List[RemoteRecord]:
        return await asyncio.to_thread(self._list_blocking)

    async def delete(self, remote_id: str) -> None:
        await asyncio.to_thread(self._delete_blocking, remote_id)

    # ------------------------------------------------------------------
    # Blocking implementations
    # ------------------------------------------------------------------
    def _insert_blocking(self, record: NewRecord) -> str:
        if not record.author or not record.body or not record.secret:
            raise WriteRejected("author, body and secret are required")

        with self._lock:
            created_at = self._clock()
            if self._last_created_at is not None and created_at <= self._last_created_at:
                created_at = self._last_created_at + 1e-6

            stored = RemoteRecord(
                remote_id=generate_ulid(),
                author=record.author,
                body=record.body,
                secret=record.secret,
                created_at=created_at,
            )
            self._append_locked(OP_INSERT, stored.to_dict())
            self._last_created_at = created_at
            self._live[stored.remote_id] = stored
            return stored.remote_id

    def _list_blocking(self) -> List[RemoteRecord]:
        with self._lock:
            records = list(self._live.values())
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def _delete_blocking(self, remote_id: str) -> None:
        with self._lock:
            if remote_id not in self._live:
                raise NotFound(f"Remote log has no record '{remote_id}'")
            self._append_locked(OP_DELETE, {"remoteId": remote_id})
            del self._live[remote_id]

    def _append_locked(self, op: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        entry = {
            "seq": self._seq + 1,
            "op": op,
            "timestamp_iso": now_iso(),
            "payload": payload,
            "prev_hash": self._last_hash,
        }
        entry["entry_hash"] = _hash_line(entry)

        line = json.dumps(entry, ensure_ascii=False, sort_keys=True) + "\n"
        try:
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
                if self._sync:
                    os.fsync(f.fileno())
        except OSError as ex:
            raise StoreUnavailable(f"Cannot write guestbook log {self._path}: {ex}") from ex

        # Chain advances only after the write is durable.
        self._seq = entry["seq"]
        self._last_hash = entry["entry_hash"]
        return entry

    # ------------------------------------------------------------------
    # Replay / integrity
    # ------------------------------------------------------------------
    def _read_lines(self) -> Tuple[List[Dict[str, Any]], int]:
        """
        Parse lines up to the first corrupt one.

        Returns the entries and the byte offset where the valid prefix ends.
        """
        entries: List[Dict[str, Any]] = []
        valid_end = 0
        if not self._path.exists():
            return entries, valid_end

        offset = 0
        with open(self._path, "rb") as f:
            for raw in f:
                offset += len(raw)
                line = raw.strip()
                if not line:
                    valid_end = offset
                    continue
                try:
                    entries.append(json.loads(line.decode("utf-8")))
                except (UnicodeDecodeError, json.JSONDecodeError):
                    logger.warning("Skipping corrupted guestbook log tail in %s", self._path)
                    break
                valid_end = offset
        return entries, valid_end

    def _repair_tail(self, valid_end: int) -> None:
        """Cut a torn tail so the next append starts on a clean line."""
        size = self._path.stat().st_size
        with open(self._path, "r+b") as f:
            if valid_end < size:
                logger.warning(
                    "Truncating %d corrupted bytes from %s", size - valid_end, self._path
                )
                f.truncate(valid_end)
            if valid_end > 0:
                f.seek(valid_end - 1)
                if f.read(1) != b"\n":
                    f.write(b"\n")
            f.flush()
            if self._sync:
                os.fsync(f.fileno())

    def _resume_from_existing(self) -> None:
        """Rebuild the live view, sequence and hash chain from the file."""
        entries, valid_end = self._read_lines()
        if self._path.exists():
            self._repair_tail(valid_end)

        for entry in entries:
            payload = entry.get("payload") or {}
            if entry.get("op") == OP_INSERT:
                record = RemoteRecord.from_dict(payload)
                self._live[record.remote_id] = record
                if self._last_created_at is None or record.created_at > self._last_created_at:
                    self._last_created_at = record.created_at
            elif entry.get("op") == OP_DELETE:
                self._live.pop(payload.get("remoteId"), None)
            self._seq = entry.get("seq", self._seq)
            self._last_hash = entry.get("entry_hash")

    def verify_integrity(self) -> Tuple[bool, Optional[str]]:
        """
        Verify the hash chain.

        Returns (True, None) if valid, (False, reason) if corrupt.
        """
        prev_hash = None
        entries, _ = self._read_lines()
        for entry in entries:
            if entry.get("prev_hash") != prev_hash:
                return False, f"Hash chain broken at seq={entry.get('seq')}"

            stored_hash = entry.pop("entry_hash", None)
            if stored_hash != _hash_line(entry):
                return False, f"Entry hash mismatch at seq={entry.get('seq')}"
            prev_hash = stored_hash

        return True, None

    @property
    def entry_count(self) -> int:
        return self._seq
