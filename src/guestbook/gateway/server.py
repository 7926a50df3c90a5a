"""
Guestbook HTTP log gateway.

Serves any RemoteLog over HTTP so that HTTPRemoteLog clients on other
hosts share one log.

Contract (matches HTTPRemoteLog):

  GET    /healthz                   -> {"status": "ok"}
  GET    /entries                   -> {"entries": [RemoteRecord wire dicts]}, newest first
  POST   /entries                   {"author", "body", "secret"}
                                    -> 201 {"remoteId": "..."}
                                    -> 422 when the input or the store rejects it
  DELETE /entries/{remoteId}        -> 204, 404 when unknown

Store failures (StoreUnavailable) surface as 503.

Note that the gateway never checks secrets: deletion is authorized by the
client-side lifecycle manager before it calls DELETE.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel

from guestbook.protocol.errors import (
    NotFound,
    RemoteLogError,
    StoreUnavailable,
    ValidationError,
    WriteRejected,
)
from guestbook.protocol.validators import validate_submission
from guestbook.transport.base import RemoteLog

logger = logging.getLogger("guestbook.gateway")


class EntryIn(BaseModel):
    author: str
    body: str
    secret: str


def create_app(
    remote: RemoteLog,
    *,
    max_author_length: Optional[int] = None,
    max_body_length: Optional[int] = None,
) -> FastAPI:
    app = FastAPI(title="Guestbook Log Gateway", version="0.1.0")

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/entries")
    async def list_entries() -> Dict[str, Any]:
        try:
            records = await remote.list_ordered_by_creation_descending()
        except RemoteLogError as ex:
            logger.warning("List failed: %s", ex)
            raise HTTPException(status_code=503, detail=str(ex))
        return {"entries": [r.to_dict() for r in records]}

    @app.post("/entries", status_code=201)
    async def insert_entry(payload: EntryIn) -> Dict[str, str]:
        try:
            record = validate_submission(
                payload.author,
                payload.body,
                payload.secret,
                max_author_length=max_author_length,
                max_body_length=max_body_length,
            )
            remote_id = await remote.insert(record)
        except (ValidationError, WriteRejected) as ex:
            raise HTTPException(status_code=422, detail=str(ex))
        except StoreUnavailable as ex:
            logger.warning("Insert failed: %s", ex)
            raise HTTPException(status_code=503, detail=str(ex))

        logger.info("Inserted %s by %r", remote_id, record.author)
        return {"remoteId": remote_id}

    @app.delete("/entries/{remote_id}", status_code=204)
    async def delete_entry(remote_id: str) -> Response:
        try:
            await remote.delete(remote_id)
        except NotFound as ex:
            raise HTTPException(status_code=404, detail=str(ex))
        except RemoteLogError as ex:
            logger.warning("Delete of %s failed: %s", remote_id, ex)
            raise HTTPException(status_code=503, detail=str(ex))

        logger.info("Deleted %s", remote_id)
        return Response(status_code=204)

    return app


def serve(
    remote: RemoteLog,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    max_author_length: Optional[int] = None,
    max_body_length: Optional[int] = None,
    log_level: str = "info",
) -> None:
    """Run the gateway under uvicorn (blocking)."""
    app = create_app(
        remote,
        max_author_length=max_author_length,
        max_body_length=max_body_length,
    )
    uvicorn.run(app, host=host, port=port, log_level=log_level.lower())
