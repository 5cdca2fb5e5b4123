"""
FastAPI application for the gateway.

``create_app`` wires config, store and multiget handler into ``app.state``;
the module-level ``app`` is built from the environment for uvicorn.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from cellgate import __version__
from cellgate.api.csrf import CsrfMiddleware
from cellgate.api.multiget import router as multiget_router
from cellgate.api.rows import router as rows_router
from cellgate.config import GatewayConfig, load_config
from cellgate.core.constants import MIMETYPE_TEXT, REQUEST_ID_HEADER
from cellgate.core.errors import GatewayError
from cellgate.gateway.multiget import MultiGetHandler
from cellgate.monitoring import CONTENT_TYPE_LATEST, REQUESTS, generate_latest
from cellgate.store import RowStore, build_store
from cellgate.utils.logging import get_logger, log_context

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the log context and counts requests per route."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        status = "500"
        with log_context(request_id=request_id):
            try:
                response = await call_next(request)
                status = str(response.status_code)
            finally:
                route = request.scope.get("route")
                REQUESTS.labels(
                    route=getattr(route, "path", "unmatched"),
                    method=request.method,
                    status=status,
                ).inc()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


async def _gateway_error(request: Request, exc: GatewayError) -> Response:
    logger.info(
        "request_failed",
        path=request.url.path,
        status=exc.status_code,
        kind=exc.kind,
        error=exc.message,
    )
    return PlainTextResponse(
        f"{exc.kind}\n{exc.message}\n",
        status_code=exc.status_code,
        media_type=MIMETYPE_TEXT,
    )


async def _unhandled_error(request: Request, exc: Exception) -> Response:
    logger.exception("request_crashed", path=request.url.path, error_type=type(exc).__name__)
    return PlainTextResponse(
        "Internal server error\n", status_code=500, media_type=MIMETYPE_TEXT
    )


def create_app(
    config: Optional[GatewayConfig] = None, store: Optional[RowStore] = None
) -> FastAPI:
    """Build the gateway app; ``store`` defaults to ``build_store(config)``."""
    if config is None:
        config = load_config()
    if store is None:
        store = build_store(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "gateway_started",
            backend=config.store_backend,
            request_timeout=config.request_timeout,
            max_parallel_reads=config.max_parallel_reads,
        )
        try:
            yield
        finally:
            await store.close()
            logger.info("gateway_stopped")

    app = FastAPI(title="Cellgate REST Gateway", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.state.multiget = MultiGetHandler(
        store,
        request_timeout=config.request_timeout,
        max_parallel_reads=config.max_parallel_reads,
        read_retries=config.read_retries,
        retry_backoff_base=config.retry_backoff_base,
    )

    if config.csrf_enabled:
        app.add_middleware(
            CsrfMiddleware,
            custom_header=config.csrf_custom_header,
            methods_to_ignore=config.csrf_methods_to_ignore,
            browser_useragents_regex=config.csrf_browser_useragents_regex,
        )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(GatewayError, _gateway_error)
    app.add_exception_handler(Exception, _unhandled_error)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # multiget paths must match before the generic row paths
    app.include_router(multiget_router)
    app.include_router(rows_router)
    return app


app = create_app()
