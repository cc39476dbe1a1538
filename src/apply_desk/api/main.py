"""Main FastAPI application for Apply Desk."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apply_desk import __version__
from apply_desk.api.models import ErrorResponse
from apply_desk.api.routes import all_routers
from apply_desk.config import settings
from apply_desk.core.errors import ApplyDeskError
from apply_desk.sessions.manager import SessionManager, create_session_manager
from apply_desk.store.base import ProfileStore
from apply_desk.store.files import ResumeFiles
from apply_desk.store.memory import InMemoryStore
from apply_desk.utils.logging import configure_logging, get_logger

# Logging is configured once per process
configure_logging()
logger = get_logger(__name__)


def build_store() -> InMemoryStore:
    """Build the in-process store, seeded from ``settings.seed_file`` when set."""
    if settings.seed_file:
        return InMemoryStore.from_seed(settings.seed_file)
    return InMemoryStore()


def create_app(
    manager: Optional[SessionManager] = None,
    store: Optional[ProfileStore] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        manager: Pre-built session manager; built at startup when omitted
        store: Store for the manager built at startup; seeded from settings when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        session_manager = manager or create_session_manager(
            store=store or build_store(),
            resume_files=ResumeFiles(settings.resume_dir),
        )
        session_manager.resume_files.ensure_dir()
        app.state.manager = session_manager
        logger.info("api_started", resume_dir=str(session_manager.resume_files.resume_dir))

        try:
            yield
        finally:
            disposed = await session_manager.shutdown()
            logger.info("api_stopped", browsers_disposed=disposed)

    app = FastAPI(
        title="Apply Desk API",
        description="Live autofill sessions for job applications",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app)
    setup_exception_handlers(app)
    for router in all_routers:
        app.include_router(router)

    return app


def setup_middleware(app: FastAPI) -> None:
    """CORS, optional trusted hosts, and one access log line per request."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    if settings.allowed_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        loop = asyncio.get_running_loop()
        started = loop.time()
        log = logger.bind(method=request.method, path=request.url.path)
        try:
            response = await call_next(request)
        except Exception as e:
            log.error("request_failed", error=str(e), elapsed=round(loop.time() - started, 4))
            raise
        log.info("request", status_code=response.status_code, elapsed=round(loop.time() - started, 4))
        return response


def error_response(status_code: int, error: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            message=message,
            details=details,
            timestamp=datetime.now(timezone.utc)
        ).model_dump(mode="json")
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup global exception handlers."""

    @app.exception_handler(ApplyDeskError)
    async def apply_desk_exception_handler(request: Request, exc: ApplyDeskError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Request rejected",
            error=exc.message,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            url=str(request.url)
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        response = error_response(exc.status_code, type(exc).__name__, exc.message, exc.details or None)
        if headers:
            response.headers.update(headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "Validation error",
            errors=exc.errors(),
            url=str(request.url)
        )
        return error_response(
            422,
            "ValidationError",
            "Request validation failed",
            {"validation_errors": jsonable_errors(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            url=str(request.url)
        )
        return error_response(exc.status_code, "HTTPException", str(exc.detail))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            url=str(request.url)
        )
        return error_response(
            500,
            "InternalServerError",
            "An unexpected error occurred",
            {"error_type": type(exc).__name__} if settings.debug else None,
        )


def jsonable_errors(exc: RequestValidationError):
    # ctx may hold exception instances that do not serialise
    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]


app = create_app()
