"""Request context middleware: correlation ids, access logging and HTTP metrics."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from smolchat.config.settings import Settings
from smolchat.observability.logging import request_id_var
from smolchat.observability.metrics import record_http_request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
# metric label for requests no route matched
UNMATCHED_PATH = "<unmatched>"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, expose it to logging and time every request."""

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self._settings = settings

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        start = time.perf_counter()
        logger.debug("%s %s started", request.method, request.url.path)
        try:
            response = await call_next(request)

            duration = time.perf_counter() - start
            route = request.scope.get("route")
            path = route.path if route is not None else UNMATCHED_PATH
            record_http_request(request.method, path, response.status_code, duration)
            logger.info(
                "%s %s -> %d (%.1f ms)",
                request.method,
                request.url.path,
                response.status_code,
                duration * 1000,
            )
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
