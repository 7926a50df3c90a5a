"""
Guestbook CLI commands.

Commands:
    guestbook list                                  Show the guestbook, newest first
    guestbook post --author A --body B --secret S   Leave a message
    guestbook retract <remote-id> --secret S        Retract your own message
    guestbook serve                                 Run the HTTP log gateway

Every command reconciles against the configured remote log first, so the
output reflects the authoritative state.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Dict, Iterable

from guestbook.core.manager import LifecycleManager
from guestbook.core.settings import get_settings
from guestbook.protocol.enums import EntryState
from guestbook.protocol.errors import GuestbookError, NotFound
from guestbook.protocol.models import Entry
from guestbook.utils.timestamps import to_iso


def cmd_list(args) -> None:
    """Print the reconciled guestbook."""

    async def run() -> tuple:
        manager = LifecycleManager.from_settings()
        try:
            await manager.reconcile()
            return manager.snapshot()
        finally:
            await manager.close()

    entries = _run_or_exit(run())
    _print_entries(entries, getattr(args, "output", "table"))


def cmd_post(args) -> None:
    """Submit a message and wait for the remote log to settle."""

    async def run() -> Entry:
        manager = LifecycleManager.from_settings()
        try:
            local_id = manager.submit(args.author, args.body, args.secret)
            await manager.drain()
            return manager.store.get(local_id)
        finally:
            await manager.close()

    entry = _run_or_exit(run())
    output_format = getattr(args, "output", "table")

    if output_format == "json":
        print(json.dumps(entry.to_dict(), indent=2))
    else:
        print(f"{entry.state.value}: {entry.author}: {entry.body}")

    if entry.state is EntryState.ERRORED:
        message = entry.error.message if entry.error else "unknown error"
        print(f"Error: message was not saved: {message}", file=sys.stderr)
        sys.exit(1)


def cmd_retract(args) -> None:
    """Retract a message by its remote id (as shown by `list`)."""

    async def run() -> Entry:
        manager = LifecycleManager.from_settings()
        try:
            await manager.reconcile()
            entry = _lookup(manager, args.entry_id)
            return await manager.retract(entry.local_id, args.secret)
        finally:
            await manager.close()

    entry = _run_or_exit(run())
    print(f"Retracted {entry.remote_id} ({entry.author})")


def cmd_serve(args) -> None:
    """Run the HTTP log gateway over the configured local backend."""
    from guestbook.gateway.server import serve
    from guestbook.transport import build_remote_log

    settings = get_settings()
    if settings.remote.backend == "http":
        print("Error: serve needs a local backend (memory or jsonl), not http", file=sys.stderr)
        sys.exit(1)

    serve(
        build_remote_log(settings.remote),
        host=args.host or settings.gateway.host,
        port=args.port or settings.gateway.port,
        max_author_length=settings.validation.max_author_length,
        max_body_length=settings.validation.max_body_length,
        log_level=settings.runtime.log_level,
    )


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------
def _lookup(manager: LifecycleManager, entry_id: str) -> Entry:
    if entry_id in manager.store:
        return manager.store.get(entry_id)
    try:
        return manager.store.find_by_remote_id(entry_id)
    except NotFound:
        raise NotFound(f"No guestbook entry '{entry_id}'")


def _run_or_exit(coro) -> Any:
    try:
        return asyncio.run(coro)
    except GuestbookError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _print_entries(entries: Iterable[Entry], fmt: str) -> None:
    entries = list(entries)
    if fmt == "json":
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return
    if fmt == "jsonl":
        for e in entries:
            print(json.dumps(e.to_dict()))
        return

    if not entries:
        print("The guestbook is empty.")
        return

    print(f"{'REMOTE ID':<28} {'STATE':<10} {'AUTHOR':<20} {'CREATED':<21} MESSAGE")
    print("-" * 110)
    for e in entries:
        row: Dict[str, Any] = {
            "id": e.remote_id or "-",
            "state": e.state.value,
            "author": e.author[:20],
            "created": to_iso(e.created_at)[:19],
            "body": e.body.replace("\n", " ")[:60],
        }
        print(
            f"{row['id']:<28} {row['state']:<10} {row['author']:<20} "
            f"{row['created']:<21} {row['body']}"
        )
    print(f"\nTotal: {len(entries)} entries")
