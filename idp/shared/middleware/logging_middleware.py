# idp/shared/middleware/logging_middleware.py

"""
Request logging.

One line when a request arrives and one when its response leaves, tagged
with a request id that is echoed back in ``X-Request-ID``. Credentials never
reach the log: no headers, cookies or bodies are written, and query strings
and client addresses are dropped in production.
"""

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from idp.adapters.configuration.config import settings

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class AsyncRequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        target = f"{request.method} {request.url.path}"

        if settings.ENVIRONMENT == "production":
            logger.info(f"[{request_id}] -> {target}")
        else:
            client = request.client.host if request.client else "N/A"
            query = request.url.query or "-"
            logger.info(f"[{request_id}] -> {target} | query: {query} | client: {client}")

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        log = logger.warning if response.status_code >= 400 else logger.info
        log(f"[{request_id}] <- {response.status_code} {target} in {elapsed_ms:.1f}ms")
        return response
