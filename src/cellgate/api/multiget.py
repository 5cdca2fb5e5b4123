from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from fastapi import APIRouter, Request, Response

from cellgate.codec import registry
from cellgate.gateway.multiget import MultiGetHandler, MultiGetRequest
from cellgate.utils.logging import get_logger, log_context

logger = get_logger(__name__)

router = APIRouter()

T = TypeVar("T")

DISCONNECT_POLL_INTERVAL = 0.1  # seconds


class ClientDisconnected(Exception):
    pass


async def _until_disconnect(request: Request, work: Awaitable[T]) -> T:
    """Await ``work``, cancelling it if the client goes away first."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)


@router.get("/{table}/multiget")
@router.get("/{table}/multiget/")
@router.get("/{table}/multiget/{columns}")
async def multiget(request: Request, table: str) -> Response:
    # octet-stream is not in PRODUCES; an unacceptable Accept fails before any read
    media_type = registry.negotiate(request.headers.get("accept"))

    handler: MultiGetHandler = request.app.state.multiget
    mg_request = MultiGetRequest.from_http(
        table,
        request.scope.get("query_string", b""),
        request.headers,
        request.path_params.get("columns"),
    )

    with log_context(table=table):
        try:
            cell_set = await _until_disconnect(request, handler.execute(mg_request))
        except ClientDisconnected:
            logger.info("multiget_cancelled", reason="client_disconnected")
            return Response(status_code=499)

    body = registry.encode(cell_set, media_type)
    return Response(content=body, media_type=media_type)
