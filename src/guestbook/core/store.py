from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Set, Tuple

from ..protocol.errors import DuplicateLocalId, NotFound
from ..protocol.models import Entry


def _ordered(entries: Iterable[Entry]) -> List[Entry]:
    # sorted() stays stable with reverse=True, so equal created_at keeps the
    # incoming order: head inserts win ties.
    return sorted(entries, key=lambda e: e.created_at, reverse=True)


class EntryStore:
    """
    In-memory ordered registry of entries.

    Order is always created_at descending. No network access; every method
    is synchronous, so on a single event loop each call is atomic.
    """

    def __init__(self) -> None:
        self._entries: List[Entry] = []
        self._by_id: Dict[str, Entry] = {}
        self._retired: Set[str] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, local_id: object) -> bool:
        return local_id in self._by_id

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def insert_optimistic(self, entry: Entry) -> None:
        if entry.local_id in self._by_id or entry.local_id in self._retired:
            raise DuplicateLocalId(f"Local id '{entry.local_id}' is already in use")
        self._set([entry] + self._entries)

    def replace_all(self, entries: Sequence[Entry], resolved: Iterable[str] = ()) -> None:
        """
        Replace the sequence with an authoritative one.

        Unconfirmed entries missing from `entries` survive at their
        optimistic position unless their local id is in `resolved`.
        """
        incoming: Dict[str, Entry] = {}
        for entry in entries:
            if entry.local_id in incoming:
                raise DuplicateLocalId(f"Local id '{entry.local_id}' appears twice")
            if entry.local_id in self._retired:
                raise DuplicateLocalId(f"Local id '{entry.local_id}' was retired")
            incoming[entry.local_id] = entry

        resolved_ids = set(resolved)
        kept = [
            e
            for e in self._entries
            if e.state.is_unconfirmed
            and e.local_id not in incoming
            and e.local_id not in resolved_ids
        ]

        dropped = set(self._by_id) - set(incoming) - {e.local_id for e in kept}
        self._retired.update(dropped)
        self._set(kept + list(incoming.values()))

    def update(self, entry: Entry) -> None:
        if entry.local_id not in self._by_id:
            raise NotFound(f"No entry with local id '{entry.local_id}'")
        self._set([entry if e.local_id == entry.local_id else e for e in self._entries])

    def remove(self, local_id: str) -> Entry:
        entry = self._by_id.get(local_id)
        if entry is None:
            raise NotFound(f"No entry with local id '{local_id}'")
        self._retired.add(local_id)
        self._set([e for e in self._entries if e.local_id != local_id])
        return entry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, local_id: str) -> Entry:
        entry = self._by_id.get(local_id)
        if entry is None:
            raise NotFound(f"No entry with local id '{local_id}'")
        return entry

    def find_by_remote_id(self, remote_id: str) -> Entry:
        for entry in self._entries:
            if entry.remote_id == remote_id:
                return entry
        raise NotFound(f"No entry with remote id '{remote_id}'")

    def snapshot(self) -> Tuple[Entry, ...]:
        return tuple(self._entries)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _set(self, entries: Iterable[Entry]) -> None:
        ordered = _ordered(entries)
        self._entries = ordered
        self._by_id = {e.local_id: e for e in ordered}
