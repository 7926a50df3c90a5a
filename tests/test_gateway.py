"""
Tests for the HTTP log gateway (FastAPI app over an in-memory log).
"""

import pytest
from fastapi.testclient import TestClient

from guestbook.gateway.server import create_app
from guestbook.protocol.errors import StoreUnavailable
from guestbook.transport.inmemory import InMemoryRemoteLog


@pytest.fixture
def log():
    return InMemoryRemoteLog(clock=lambda: 100.0)


@pytest.fixture
def client(log):
    return TestClient(create_app(log, max_author_length=10, max_body_length=50))


def post(client, author="Ann", body="Hi", secret="pw1"):
    return client.post("/entries", json={"author": author, "body": body, "secret": secret})


# ===========================================================================
# Reads
# ===========================================================================


class TestRead:
    def test_healthz(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_empty_list(self, client):
        resp = client.get("/entries")
        assert resp.status_code == 200
        assert resp.json() == {"entries": []}

    def test_list_newest_first(self, client):
        post(client, author="Ann")
        post(client, author="Bo")

        entries = client.get("/entries").json()["entries"]

        assert [e["author"] for e in entries] == ["Bo", "Ann"]
        assert set(entries[0]) == {"remoteId", "author", "body", "secret", "createdAt"}

    def test_list_store_unavailable(self, client, log):
        log.fail_next("list", StoreUnavailable("disk gone"))

        resp = client.get("/entries")

        assert resp.status_code == 503
        assert "disk gone" in resp.json()["detail"]


# ===========================================================================
# Writes
# ===========================================================================


class TestInsert:
    def test_insert_returns_remote_id(self, client, log):
        resp = post(client)

        assert resp.status_code == 201
        assert resp.json() == {"remoteId": "r1"}
        assert log.records[0].secret == "pw1"

    @pytest.mark.parametrize(
        "field,value",
        [("author", "   "), ("body", ""), ("author", "x" * 11), ("body", "y" * 51)],
    )
    def test_invalid_input(self, client, log, field, value):
        payload = {"author": "Ann", "body": "Hi", "secret": "pw1", field: value}

        resp = client.post("/entries", json=payload)

        assert resp.status_code == 422
        assert log.records == []

    def test_missing_field(self, client):
        resp = client.post("/entries", json={"author": "Ann", "body": "Hi"})
        assert resp.status_code == 422

    def test_store_unavailable(self, client, log):
        log.fail_next("insert", StoreUnavailable("disk gone"))

        resp = post(client)

        assert resp.status_code == 503


class TestDelete:
    def test_delete_then_missing(self, client, log):
        remote_id = post(client).json()["remoteId"]

        first = client.delete(f"/entries/{remote_id}")
        second = client.delete(f"/entries/{remote_id}")

        assert first.status_code == 204
        assert second.status_code == 404
        assert log.deleted == [remote_id]

    def test_delete_store_unavailable(self, client, log):
        remote_id = post(client).json()["remoteId"]
        log.fail_next("delete", StoreUnavailable("disk gone"))

        resp = client.delete(f"/entries/{remote_id}")

        assert resp.status_code == 503
        assert [r.remote_id for r in log.records] == [remote_id]
