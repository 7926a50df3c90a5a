"""
Tests for the remote log adapters: in-memory, JSONL file and HTTP client.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from guestbook.core.settings import RemoteSettings
from guestbook.protocol.errors import NotFound, StoreUnavailable, WriteRejected
from guestbook.protocol.models import NewRecord, RemoteRecord
from guestbook.transport import build_remote_log
from guestbook.transport.http_remote import HTTPRemoteLog
from guestbook.transport.inmemory import InMemoryRemoteLog
from guestbook.transport.jsonl import JsonlRemoteLog


ANN = NewRecord(author="Ann", body="Hi", secret="pw1")
BO = NewRecord(author="Bo", body="Yo", secret="pw2")


# ===========================================================================
# 1. In-memory log
# ===========================================================================


class TestInMemoryRemoteLog:
    @pytest.mark.asyncio
    async def test_insert_list_delete(self):
        log = InMemoryRemoteLog(clock=lambda: 5.0)

        r1 = await log.insert(ANN)
        r2 = await log.insert(BO)
        listed = await log.list_ordered_by_creation_descending()

        assert [r.remote_id for r in listed] == [r2, r1]
        assert listed[0].created_at > listed[1].created_at

        await log.delete(r1)
        assert [r.remote_id for r in await log.list_ordered_by_creation_descending()] == [r2]
        assert log.deleted == [r1]

    @pytest.mark.asyncio
    async def test_delete_unknown(self):
        with pytest.raises(NotFound):
            await InMemoryRemoteLog().delete("nope")

    @pytest.mark.asyncio
    async def test_list_lag(self):
        log = InMemoryRemoteLog(list_lag=2)
        await log.insert(ANN)

        assert await log.list_ordered_by_creation_descending() == []
        assert await log.list_ordered_by_creation_descending() == []
        assert len(await log.list_ordered_by_creation_descending()) == 1

    @pytest.mark.asyncio
    async def test_fail_next_applies_once(self):
        log = InMemoryRemoteLog()
        log.fail_next("insert", StoreUnavailable("down"))

        with pytest.raises(StoreUnavailable):
            await log.insert(ANN)
        assert await log.insert(ANN) == "r1"
        assert log.calls["insert"] == 2


# ===========================================================================
# 2. JSONL file log
# ===========================================================================


class TestJsonlRemoteLog:
    @pytest.mark.asyncio
    async def test_roundtrip_and_persistence(self, tmp_path):
        path = tmp_path / "gb" / "log.jsonl"
        log = JsonlRemoteLog(str(path), sync=False)

        r1 = await log.insert(ANN)
        r2 = await log.insert(BO)
        await log.delete(r1)

        reopened = JsonlRemoteLog(str(path), sync=False)
        listed = await reopened.list_ordered_by_creation_descending()

        assert [r.remote_id for r in listed] == [r2]
        assert listed[0].author == "Bo"
        assert listed[0].secret == "pw2"
        assert reopened.entry_count == 3

    @pytest.mark.asyncio
    async def test_created_at_strictly_increasing(self, tmp_path):
        log = JsonlRemoteLog(str(tmp_path / "log.jsonl"), sync=False, clock=lambda: 7.0)

        await log.insert(ANN)
        await log.insert(BO)
        listed = await log.list_ordered_by_creation_descending()

        assert listed[0].author == "Bo"
        assert listed[0].created_at > listed[1].created_at

    @pytest.mark.asyncio
    async def test_delete_unknown(self, tmp_path):
        log = JsonlRemoteLog(str(tmp_path / "log.jsonl"), sync=False)

        with pytest.raises(NotFound):
            await log.delete("missing")

    @pytest.mark.asyncio
    async def test_rejects_empty_fields(self, tmp_path):
        log = JsonlRemoteLog(str(tmp_path / "log.jsonl"), sync=False)

        with pytest.raises(WriteRejected):
            await log.insert(NewRecord(author="", body="Hi", secret="pw"))
        assert log.entry_count == 0

    @pytest.mark.asyncio
    async def test_integrity(self, tmp_path):
        path = tmp_path / "log.jsonl"
        log = JsonlRemoteLog(str(path), sync=False)
        await log.insert(ANN)
        await log.insert(BO)

        assert log.verify_integrity() == (True, None)

        lines = path.read_text(encoding="utf-8").splitlines()
        tampered = json.loads(lines[0])
        tampered["payload"]["body"] = "edited"
        lines[0] = json.dumps(tampered, sort_keys=True)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

        ok, reason = log.verify_integrity()
        assert ok is False
        assert "seq=1" in reason

    @pytest.mark.asyncio
    async def test_corrupt_tail_is_ignored(self, tmp_path):
        path = tmp_path / "log.jsonl"
        log = JsonlRemoteLog(str(path), sync=False)
        r1 = await log.insert(ANN)

        with open(path, "a", encoding="utf-8") as f:
            f.write('{"seq": 2, "op": "ins')

        reopened = JsonlRemoteLog(str(path), sync=False)
        listed = await reopened.list_ordered_by_creation_descending()
        assert [r.remote_id for r in listed] == [r1]

        r2 = await reopened.insert(BO)

        again = JsonlRemoteLog(str(path), sync=False)
        listed = await again.list_ordered_by_creation_descending()
        assert [r.remote_id for r in listed] == [r2, r1]
        assert again.verify_integrity() == (True, None)

    @pytest.mark.asyncio
    async def test_valid_last_line_without_newline(self, tmp_path):
        path = tmp_path / "log.jsonl"
        log = JsonlRemoteLog(str(path), sync=False)
        r1 = await log.insert(ANN)
        path.write_text(path.read_text(encoding="utf-8").rstrip("\n"), encoding="utf-8")

        reopened = JsonlRemoteLog(str(path), sync=False)
        r2 = await reopened.insert(BO)

        again = JsonlRemoteLog(str(path), sync=False)
        listed = await again.list_ordered_by_creation_descending()
        assert {r.remote_id for r in listed} == {r1, r2}


# ===========================================================================
# 3. HTTP client
# ===========================================================================


def fake_response(status_code, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    if payload is None:
        resp.json.side_effect = ValueError("no body")
        resp.text = ""
    else:
        resp.json.return_value = payload
        resp.text = json.dumps(payload)
    return resp


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


class TestHTTPRemoteLog:
    @pytest.mark.asyncio
    async def test_insert(self, session):
        session.request.return_value = fake_response(201, {"remoteId": "abc"})
        log = HTTPRemoteLog("http://gb.test/", timeout=3.0, session=session)

        assert await log.insert(ANN) == "abc"

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert (method, url) == ("POST", "http://gb.test/entries")
        assert kwargs["timeout"] == 3.0
        assert json.loads(kwargs["data"]) == {"author": "Ann", "body": "Hi", "secret": "pw1"}

    @pytest.mark.asyncio
    async def test_insert_rejected(self, session):
        session.request.return_value = fake_response(422, {"detail": "body too long"})
        log = HTTPRemoteLog("http://gb.test", session=session)

        with pytest.raises(WriteRejected, match="body too long"):
            await log.insert(ANN)

    @pytest.mark.asyncio
    async def test_insert_server_error(self, session):
        session.request.return_value = fake_response(500, {"detail": "boom"})
        log = HTTPRemoteLog("http://gb.test", session=session)

        with pytest.raises(StoreUnavailable):
            await log.insert(ANN)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc", [requests.ConnectionError("refused"), requests.Timeout("slow")]
    )
    async def test_network_failures_are_unavailable(self, session, exc):
        session.request.side_effect = exc
        log = HTTPRemoteLog("http://gb.test", session=session)

        with pytest.raises(StoreUnavailable):
            await log.list_ordered_by_creation_descending()

    @pytest.mark.asyncio
    async def test_list(self, session):
        session.request.return_value = fake_response(
            200,
            {
                "entries": [
                    {"remoteId": "b", "author": "Bo", "body": "Yo", "secret": "pw2", "createdAt": 2},
                    {"remoteId": "a", "author": "Ann", "body": "Hi", "secret": "pw1", "createdAt": 1},
                ]
            },
        )
        log = HTTPRemoteLog("http://gb.test", session=session)

        listed = await log.list_ordered_by_creation_descending()

        assert listed == [
            RemoteRecord("b", "Bo", "Yo", "pw2", 2.0),
            RemoteRecord("a", "Ann", "Hi", "pw1", 1.0),
        ]

    @pytest.mark.asyncio
    async def test_list_malformed(self, session):
        session.request.return_value = fake_response(200, {"entries": [{"author": "Ann"}]})
        log = HTTPRemoteLog("http://gb.test", session=session)

        with pytest.raises(StoreUnavailable):
            await log.list_ordered_by_creation_descending()

    @pytest.mark.asyncio
    async def test_delete(self, session):
        session.request.return_value = fake_response(204)
        log = HTTPRemoteLog("http://gb.test", session=session)

        await log.delete("a/b")

        method, url = session.request.call_args.args
        assert (method, url) == ("DELETE", "http://gb.test/entries/a%2Fb")

    @pytest.mark.asyncio
    async def test_delete_not_found(self, session):
        session.request.return_value = fake_response(404, {"detail": "missing"})
        log = HTTPRemoteLog("http://gb.test", session=session)

        with pytest.raises(NotFound):
            await log.delete("a")


# ===========================================================================
# 4. Factory
# ===========================================================================


class TestBuildRemoteLog:
    def test_memory(self):
        assert isinstance(build_remote_log(RemoteSettings(backend="memory")), InMemoryRemoteLog)

    def test_jsonl(self, tmp_path):
        log = build_remote_log(RemoteSettings(backend="jsonl", log_path=str(tmp_path / "l.jsonl")))
        assert isinstance(log, JsonlRemoteLog)

    def test_http(self):
        log = build_remote_log(RemoteSettings(backend="http", url="http://gb.test"))
        assert isinstance(log, HTTPRemoteLog)

    def test_http_requires_url(self):
        with pytest.raises(ValueError):
            build_remote_log(RemoteSettings(backend="http"))
