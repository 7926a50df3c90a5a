from __future__ import annotations

"""
HTTP remote log, the client half of guestbook.gateway.server.

Contract (over the wire):

  POST   {base_url}/entries            {"author", "body", "secret"}
         201 {"remoteId": "..."}
         400/409/413/422 -> WriteRejected

  GET    {base_url}/entries
         200 {"entries": [{"remoteId", "author", "body", "secret", "createdAt"}, ...]}
         (newest first)

  DELETE {base_url}/entries/{remoteId}
         204
         404 -> NotFound

Any other status, a connection error or a timeout is StoreUnavailable.

requests is blocking, so every call runs in a worker thread through
asyncio.to_thread; the event loop stays free for other commands.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from guestbook.protocol.errors import NotFound, StoreUnavailable, WriteRejected
from guestbook.protocol.models import NewRecord, RemoteRecord
from guestbook.utils.json import json_dumps

from .base import RemoteLog

logger = logging.getLogger(__name__)

_REJECTED_STATUSES = (400, 409, 413, 422)


class HTTPRemoteLog(RemoteLog):
    """
    Remote log reached over HTTP.

    Typical usage:

        log = HTTPRemoteLog("http://guestbook-host:8000", timeout=5.0)
        manager = LifecycleManager(log)
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        :param base_url: Base URL of the log gateway (e.g. http://host:8000)
        :param timeout: HTTP request timeout in seconds
        :param session: Optional custom requests.Session
        """
        self._base = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    # ------------------------------------------------------------------
    # RemoteLog API
    # ------------------------------------------------------------------
    async def insert(self, record: NewRecord) -> str:
        return await asyncio.to_thread(self._insert_blocking, record)

    async def list_ordered_by_creation_descending(self) -> List[RemoteRecord]:
        return await asyncio.to_thread(self._list_blocking)

    async def delete(self, remote_id: str) -> None:
        await asyncio.to_thread(self._delete_blocking, remote_id)

    async def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Blocking implementations
    # ------------------------------------------------------------------
    def _insert_blocking(self, record: NewRecord) -> str:
        response = self._request(
            "POST",
            "/entries",
            data=json_dumps(record.to_dict()).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        if response.status_code in _REJECTED_STATUSES:
            raise WriteRejected(
                f"Remote log rejected insert ({response.status_code}): {_detail(response)}"
            )
        self._raise_unavailable(response)

        data = self._decode(response)
        remote_id = data.get("remoteId")
        if not remote_id:
            raise StoreUnavailable("Remote log insert response has no remoteId")
        return str(remote_id)

    def _list_blocking(self) -> List[RemoteRecord]:
        response = self._request("GET", "/entries")
        self._raise_unavailable(response)

        data = self._decode(response)
        try:
            return [RemoteRecord.from_dict(item) for item in data.get("entries") or []]
        except (KeyError, TypeError, ValueError) as ex:
            raise StoreUnavailable(f"Malformed entry from remote log: {ex}") from ex

    def _delete_blocking(self, remote_id: str) -> None:
        response = self._request("DELETE", f"/entries/{quote(remote_id, safe='')}")
        if response.status_code == 404:
            raise NotFound(f"Remote log has no record '{remote_id}'")
        self._raise_unavailable(response)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = self._base + path
        try:
            return self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.Timeout as ex:
            raise StoreUnavailable(f"{method} {url} timed out after {self._timeout}s") from ex
        except requests.RequestException as ex:
            raise StoreUnavailable(f"{method} {url} failed: {ex}") from ex

    @staticmethod
    def _raise_unavailable(response: requests.Response) -> None:
        if not 200 <= response.status_code < 300:
            raise StoreUnavailable(
                f"Remote log returned {response.status_code}: {_detail(response)}"
            )

    @staticmethod
    def _decode(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as ex:
            raise StoreUnavailable(f"Invalid JSON from remote log: {ex}") from ex
        if not isinstance(data, dict):
            raise StoreUnavailable("Remote log response is not a JSON object")
        return data


def _detail(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return str(data)[:200]
