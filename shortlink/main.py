from contextlib import asynccontextmanager
from typing import Optional
import logging
import time

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shortlink.api import health, shortener
from shortlink.core.config import Settings, settings
from shortlink.core.errors import (
    GenerationFailure,
    OperationCancelled,
    OperationTimeout,
    StoreFailure,
    StoreTimeout,
)
from shortlink.core.logging_config import ACCESS_LOGGER, configure_logging
from shortlink.db.Connection import database
from shortlink.db.Connection.database import StoreHandles
from shortlink.db.Models import models
from shortlink.db.repository import SQLAlchemyShortLinkRepository
from shortlink.services.keygen import CodeGenerator
from shortlink.services.metrics import ClickRecorder
from shortlink.services.shortener import LinkRegistry

logger = logging.getLogger("shortlink")
access_logger = logging.getLogger(ACCESS_LOGGER)

HTTP_499_CLIENT_CLOSED_REQUEST = 499


def create_app(app_settings: Optional[Settings] = None, stores: Optional[StoreHandles] = None) -> FastAPI:
    """Build the application.

    Store handles are opened in the lifespan unless `stores` is given, in which
    case the caller keeps ownership and closes them.
    """
    app_settings = app_settings or settings
    configure_logging(app_settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Application '{app_settings.PROJECT_NAME}' starting up.")
        handles = stores or database.open_stores(app_settings)

        database.verify_database_connection(handles.engine)
        database.verify_redis_connection(handles.redis_client)
        models.Base.metadata.create_all(bind=handles.engine)
        logger.info("Database models initialized/checked.")

        repository = SQLAlchemyShortLinkRepository(handles.session_factory)
        code_generator = CodeGenerator(handles.redis_client, app_settings.CODE_QUEUE_NAME)
        click_recorder = ClickRecorder(repository, max_workers=app_settings.CLICK_WORKERS)

        app.state.settings = app_settings
        app.state.stores = handles
        app.state.code_generator = code_generator
        app.state.click_recorder = click_recorder
        app.state.registry = LinkRegistry(
            repository,
            code_generator,
            click_recorder,
            max_attempts=app_settings.CODE_GENERATION_MAX_ATTEMPTS,
        )
        try:
            yield
        finally:
            logger.info("Shutting down gracefully...")
            click_recorder.close()
            if stores is None:
                database.close_stores(handles)

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        description="URL Shortener Service",
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(shortener.api_router)
    # Catch-all /{short_code} goes last
    app.include_router(shortener.redirect_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        latency_ms = (time.perf_counter() - started) * 1000
        access_logger.info(
            "%s %s | Status: %d | Latency: %.1fms",
            request.method, request.url.path, response.status_code, latency_ms,
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        ]
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": errors})

    @app.exception_handler(StoreTimeout)
    @app.exception_handler(OperationTimeout)
    async def timeout_exception_handler(request: Request, exc: Exception):
        logger.warning(f"Timed out serving {request.url.path}: {exc}")
        return JSONResponse(status_code=status.HTTP_504_GATEWAY_TIMEOUT, content={"detail": "Request timed out"})

    @app.exception_handler(OperationCancelled)
    async def cancelled_exception_handler(request: Request, exc: OperationCancelled):
        logger.info(f"Request cancelled: {request.url.path}")
        return JSONResponse(status_code=HTTP_499_CLIENT_CLOSED_REQUEST, content={"detail": "Request cancelled"})

    @app.exception_handler(StoreFailure)
    @app.exception_handler(GenerationFailure)
    async def internal_exception_handler(request: Request, exc: Exception):
        logger.error(f"Failed to serve {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal server error"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    return app


app = create_app()


def run():
    uvicorn.run("shortlink.main:app", host="0.0.0.0", port=settings.PORT)
