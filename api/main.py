"""FastAPI application for the Pionia service framework."""

import asyncio
from contextlib import asynccontextmanager

import fastapi
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.sessions import SessionMiddleware

from core.config import get_settings
from core.database import (
    create_engine,
    create_session_maker,
    dispose_engine,
    init_db,
)
from core.exceptions import PioniaError
from core.logger import configure_logging, get_logger
from core.middleware import RequestTimingMiddleware, SecurityHeadersMiddleware
from core.ratelimit import limiter, rate_limit_exceeded_handler
from core.responses import BaseResponse
from core.wide_event import set_wide_event_fields
from routes import api_router, health_router
from services import ActionDispatcher, ServiceRegistry, build_registry

configure_logging()
logger = get_logger(__name__)


async def pionia_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Framework errors become a normal response carrying the error code."""
    if not isinstance(exc, PioniaError):
        return await global_exception_handler(request, exc)

    logger.warning(
        "dispatch.failed",
        error_type=type(exc).__name__,
        code=exc.code,
        message=exc.message,
        path=request.url.path,
    )
    set_wide_event_fields(response_status=exc.code, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=200,
        content=BaseResponse.from_exception(exc).model_dump(),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        exc_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again."},
    )


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handler for request validation errors."""
    if not isinstance(exc, RequestValidationError):
        return JSONResponse(status_code=500, content={"detail": "Unexpected error"})

    logger.warning(
        "request.validation_error",
        path=request.url.path,
        method=request.method,
        error_count=len(exc.errors()),
    )
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors()},
    )


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Create DB engine at startup, dispose on shutdown."""
    settings = get_settings()
    app.state.engine = create_engine()
    app.state.session_maker = create_session_maker(app.state.engine)

    app.state.init_done = False
    app.state.init_error = None

    try:
        async with asyncio.timeout(60):
            await init_db(app.state.engine, create_tables=settings.auto_create_tables)
        app.state.init_done = True
        logger.info("init.complete", services=app.state.dispatcher.registry.names())
    except TimeoutError:
        logger.error("init.timeout", hint="Startup hung, check DB connectivity")
        raise RuntimeError("Application startup timed out")
    except Exception as e:
        app.state.init_error = str(e)
        logger.error("init.failed", error=str(e), exc_info=True)
        raise

    try:
        yield
    finally:
        await dispose_engine(app.state.engine)


def create_app(registry: ServiceRegistry | None = None) -> fastapi.FastAPI:
    settings = get_settings()

    app = fastapi.FastAPI(
        title="Pionia API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.enable_docs or settings.debug else None,
        redoc_url="/redoc" if settings.enable_docs or settings.debug else None,
        openapi_url=(
            "/openapi.json" if settings.enable_docs or settings.debug else None
        ),
    )

    if registry is None:
        registry = build_registry()

    app.state.dispatcher = ActionDispatcher(registry)
    app.state.limiter = limiter
    app.add_exception_handler(PioniaError, pionia_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(api_router)
    app.include_router(health_router)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        session_cookie="session",
        max_age=60 * 60 * 24 * 30,
        same_site="lax",
        https_only=settings.require_https,
    )
    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestTimingMiddleware)

    return app


app = create_app()
