# idp/shared/middleware/__init__.py (async version)

from idp.shared.middleware.exception_middleware import AsyncExceptionMiddleware, idp_exception_handler
from idp.shared.middleware.logging_middleware import AsyncRequestLoggingMiddleware

__all__ = [
    "AsyncExceptionMiddleware",
    "AsyncRequestLoggingMiddleware",
    "idp_exception_handler",
]
