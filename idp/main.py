# idp/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from fastapi.responses import RedirectResponse

from idp.adapters.configuration.config import settings
from idp.adapters.inbound.api.deps import get_block_list, get_event_publisher
from idp.adapters.inbound.api.v1.router import api_router
from idp.adapters.outbound.persistence.database import dispose_engine, init_models
from idp.domain.exceptions import IDPException
from idp.shared.middleware import (
    AsyncExceptionMiddleware,
    AsyncRequestLoggingMiddleware,
    idp_exception_handler,
)

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create missing tables. Shutdown: release Redis connections
    and the database pool.
    """
    logger.info(f"IDP starting ({settings.ENVIRONMENT})")
    await init_models()

    yield

    logger.info("IDP shutting down")
    await get_block_list().close()
    await get_event_publisher().close()
    await dispose_engine()


def _openapi_without_validation_errors(app: FastAPI):
    def openapi():
        if app.openapi_schema:
            return app.openapi_schema

        schema = get_openapi(title=app.title, version=app.version, description=app.description, routes=app.routes)
        for name in ("HTTPValidationError", "ValidationError"):
            schema.get("components", {}).get("schemas", {}).pop(name, None)
        for path in schema.get("paths", {}).values():
            for operation in path.values():
                operation.get("responses", {}).pop("422", None)

        app.openapi_schema = schema
        return schema

    return openapi


def create_app() -> FastAPI:
    application = FastAPI(
        title="IDP",
        description="Identity provider - registration, login throttling and JWT sessions",
        version="1.0.0",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    application.add_middleware(AsyncRequestLoggingMiddleware)
    application.add_middleware(AsyncExceptionMiddleware)
    application.add_exception_handler(IDPException, idp_exception_handler)

    application.include_router(api_router, prefix="/api/v1")

    @application.get("/", include_in_schema=False)
    async def redirect_to_docs():
        return RedirectResponse(url="/docs")

    application.openapi = _openapi_without_validation_errors(application)
    return application


configure_logging()
app = create_app()
