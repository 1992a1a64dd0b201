# idp/shared/middleware/exception_middleware.py (async version)

"""
Centralized exception handling.

Application exceptions are rendered by ``idp_exception_handler``; anything
that escapes an endpoint unhandled is caught by the middleware and turned
into a JSON error without leaking internals in production.
"""

import time
import logging
from typing import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from idp.domain.exceptions import IDPException
from idp.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)


def _client(request: Request) -> str:
    return request.client.host if request.client else "N/A"


async def idp_exception_handler(request: Request, exc: IDPException) -> JSONResponse:
    """Render an application exception as ``{"detail", "code"}``."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"Application exception: {exc.detail} | Code: {exc.internal_code} | "
        f"Path: {request.url.path}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.internal_code},
        headers=exc.headers,
    )


class AsyncExceptionMiddleware(BaseHTTPMiddleware):
    """
    Middleware for centralized exception handling.
    Captures unexpected exceptions and formats the response accordingly.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            response.headers["X-Process-Time"] = str(process_time)
            return response

        except SQLAlchemyError as exc:
            return self._internal_error(request, exc, "Internal database error", "DATABASE_ERROR")

        except RedisError as exc:
            return self._internal_error(request, exc, "Cache unavailable", "CACHE_ERROR")

        except Exception as exc:
            return self._internal_error(request, exc, "Internal server error", "INTERNAL_SERVER_ERROR")

    @staticmethod
    def _internal_error(request: Request, exc: Exception, public_message: str, code: str) -> JSONResponse:
        if settings.ENVIRONMENT == "production":
            error_message = public_message
            logger.error(
                f"Unhandled exception: Type={type(exc).__name__} | "
                f"Path: {request.url.path} | Client: {_client(request)}"
            )
        else:
            error_message = str(exc)
            logger.exception(
                f"Unhandled exception: {str(exc)} | "
                f"Path: {request.url.path} | Client: {_client(request)}"
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": error_message, "code": code}
        )
