"""Custom-header CSRF protection for browser clients."""

from __future__ import annotations

import re
from typing import FrozenSet, List, Optional, Pattern

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from cellgate.core.constants import (
    CSRF_BROWSER_USERAGENTS_REGEX_DEFAULT,
    CSRF_CUSTOM_HEADER_DEFAULT,
    CSRF_METHODS_TO_IGNORE_DEFAULT,
    MIMETYPE_TEXT,
)
from cellgate.utils.logging import get_logger

logger = get_logger(__name__)


def parse_methods(raw: str) -> FrozenSet[str]:
    return frozenset(m.strip().upper() for m in raw.split(",") if m.strip())


def compile_agents(raw: str) -> List[Pattern[str]]:
    return [re.compile(expr.strip()) for expr in raw.split(",") if expr.strip()]


class CsrfMiddleware(BaseHTTPMiddleware):
    """
    Reject state-changing requests from browsers that lack the custom header.

    A request is checked only when its method is not ignored and its
    ``User-Agent`` matches one of the browser patterns. Any header value is
    accepted; a browser cannot add custom headers cross-origin without CORS.
    """

    def __init__(
        self,
        app: ASGIApp,
        custom_header: str = CSRF_CUSTOM_HEADER_DEFAULT,
        methods_to_ignore: str = CSRF_METHODS_TO_IGNORE_DEFAULT,
        browser_useragents_regex: str = CSRF_BROWSER_USERAGENTS_REGEX_DEFAULT,
    ) -> None:
        super().__init__(app)
        self.custom_header = custom_header
        self.methods_to_ignore = parse_methods(methods_to_ignore)
        self.browser_agents = compile_agents(browser_useragents_regex)

    def is_browser(self, user_agent: Optional[str]) -> bool:
        if not user_agent:
            return False
        return any(pattern.match(user_agent) for pattern in self.browser_agents)

    async def dispatch(self, request: Request, call_next) -> Response:
        if (
            request.method.upper() not in self.methods_to_ignore
            and self.is_browser(request.headers.get("user-agent"))
            and self.custom_header not in request.headers
        ):
            logger.warning(
                "csrf_header_missing",
                method=request.method,
                path=request.url.path,
                header=self.custom_header,
            )
            return PlainTextResponse(
                "Missing Required Header for CSRF protection",
                status_code=400,
                media_type=MIMETYPE_TEXT,
            )
        return await call_next(request)


__all__ = ["CsrfMiddleware", "parse_methods", "compile_agents"]
