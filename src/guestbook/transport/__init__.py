from __future__ import annotations

from typing import Optional

from .base import RemoteLog
from .inmemory import InMemoryRemoteLog
from .jsonl import JsonlRemoteLog
from .http_remote import HTTPRemoteLog

__all__ = [
    "RemoteLog",
    "InMemoryRemoteLog",
    "JsonlRemoteLog",
    "HTTPRemoteLog",
    "build_remote_log",
]


def build_remote_log(settings: Optional["RemoteSettings"] = None) -> RemoteLog:
    """
    Construct the remote log selected by GUESTBOOK_REMOTE_BACKEND.
    """
    from guestbook.core.settings import RemoteSettings, get_settings

    remote: RemoteSettings = settings or get_settings().remote

    if remote.backend == "memory":
        return InMemoryRemoteLog()
    if remote.backend == "http":
        if not remote.url:
            raise ValueError("GUESTBOOK_REMOTE_URL is required for the http backend")
        return HTTPRemoteLog(remote.url, timeout=remote.timeout)
    return JsonlRemoteLog(remote.log_path)
