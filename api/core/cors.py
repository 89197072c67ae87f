"""
Cross-origin headers for browser clients.

Headers go on every response, errors included. Any OPTIONS request is
answered here with an empty 200 and never reaches the routers.
"""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .errors import error_response

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization"

logger = logging.getLogger(__name__)


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, allow_origin: str = "*") -> None:
        super().__init__(app)
        self.allow_origin = allow_origin

    def _apply(self, response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = self.allow_origin
        response.headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
        response.headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
        # Browsers refuse credentialed requests against a wildcard origin.
        if self.allow_origin != "*":
            response.headers["Access-Control-Allow-Credentials"] = "true"
        return response

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return self._apply(Response(status_code=200))
        try:
            response = await call_next(request)
        except Exception:
            # Unhandled errors become a 500 here so they carry the headers too.
            logger.exception("unhandled_exception path=%s", request.url.path)
            response = error_response(500, "Internal server error")
        return self._apply(response)
