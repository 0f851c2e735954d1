"""
FastAPI application for Spend Log.

create_app() wires routers, CORS, the correlation-id middleware and the
exception handlers that turn every failure into the response envelope.
Components are built on startup unless a prebuilt set is passed in.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from spendlog import __version__
from spendlog.api.responses import error_response
from spendlog.api.routes import (
    auth_router,
    budgets_router,
    savings_router,
    transactions_router,
)
from spendlog.audit import configure_logging, create_correlation_id
from spendlog.config import get_settings
from spendlog.orchestrator import AppComponents, create_app_components
from spendlog.services.auth import AuthError
from spendlog.services.storage import DuplicateError, NotFoundError, StorageError
from spendlog.validation import ValidationFailedError


logger = structlog.get_logger(__name__)


def _field_errors(errors: list[dict]) -> list[dict]:
    """Flatten pydantic error dicts to {field, message}."""
    flattened = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if len(loc) > 1 and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        flattened.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return flattened


def _register_exception_handlers(app: FastAPI) -> None:
    settings = get_settings().app

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "Validation error",
            errors=_field_errors(exc.errors()),
        )

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError):
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "Validation error",
            errors=_field_errors(exc.errors()),
        )

    @app.exception_handler(ValidationFailedError)
    async def semantic_validation_handler(request: Request, exc: ValidationFailedError):
        return error_response(status.HTTP_400_BAD_REQUEST, exc.message, errors=exc.errors)

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return error_response(status.HTTP_401_UNAUTHORIZED, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return error_response(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(DuplicateError)
    async def duplicate_handler(request: Request, exc: DuplicateError):
        return error_response(status.HTTP_400_BAD_REQUEST, str(exc))

    async def server_error_handler(request: Request, exc: Exception):
        logger.error(
            "request_failed",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        components: Optional[AppComponents] = getattr(request.app.state, "components", None)
        if components is not None:
            await components.audit_logger.log_error(
                error_type=type(exc).__name__,
                error_message=str(exc),
                details={"path": request.url.path, "method": request.method},
                correlation_id=getattr(request.state, "correlation_id", None),
            )
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Something went wrong!",
            error=None if settings.is_production else str(exc),
        )

    app.add_exception_handler(StorageError, server_error_handler)
    app.add_exception_handler(Exception, server_error_handler)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return error_response(status.HTTP_404_NOT_FOUND, "Route not found")
        return error_response(exc.status_code, str(exc.detail))


def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        components: Prebuilt components (tests pass an in-memory set).
                    If None, they are created from settings on startup
                    and closed on shutdown.
    """
    settings = get_settings().app
    configure_logging(debug=settings.debug_mode)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.components is None
        if owned:
            app.state.components = create_app_components()
            await app.state.components.initialize()
        logger.info(
            "app_started",
            environment=settings.app_environment,
            backend=app.state.components.backend,
        )

        yield

        if owned:
            app.state.components.close()
            app.state.components = None
        logger.info("app_stopped")

    app = FastAPI(
        title="Spend Log API",
        description="Personal finance tracking: transactions, budgets and a savings goal",
        version=__version__,
        debug=settings.debug_mode,
        lifespan=lifespan,
    )
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        correlation_id = create_correlation_id()
        request.state.correlation_id = correlation_id
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = str(correlation_id)
        return response

    _register_exception_handlers(app)

    @app.get("/")
    async def root():
        return {
            "success": True,
            "message": "Spend Log API is running...",
            "version": __version__,
        }

    @app.get("/health")
    async def health(request: Request):
        components: Optional[AppComponents] = request.app.state.components
        healthy = components is not None and await components.is_healthy()
        body = {
            "success": healthy,
            "message": "Server is healthy" if healthy else "Storage unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(status_code=code, content=body)

    app.include_router(auth_router)
    app.include_router(transactions_router)
    app.include_router(budgets_router)
    app.include_router(savings_router)

    return app
