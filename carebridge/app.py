from __future__ import annotations

import json

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .errors import ReminderError, StoreError
from .logging_config import configure_logging, get_logger
from .routes import api_router
from .utils.responses import error_response

logger = get_logger(__name__)


# Register global exception handlers for consistent error responses across the API
def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ReminderError)
    async def _reminder_exception_handler(request: Request, exc: ReminderError):
        if isinstance(exc, StoreError):
            logger.error(f"Store error on {request.url.path}: {exc.message} ({exc.detail})")
            # Store internals are not echoed to the client
            return error_response(exc.message, status_code=exc.status_code)
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return error_response(exc.message, status_code=exc.status_code, detail=exc.detail)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.debug("validation error", extra={"errors": exc.errors(), "path": str(request.url)})
        return error_response(
            "Invalid request",
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=json.dumps(exc.errors(), default=str),
        )

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        logger.debug(
            "http error",
            extra={"detail": exc.detail, "status": exc.status_code, "path": str(request.url)},
        )
        detail = exc.detail
        if not isinstance(detail, str):
            detail = json.dumps(detail)
        return error_response(detail, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": str(request.url)})
        return error_response("Internal server error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app() -> FastAPI:
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=settings.resolved_docs_url,
        redoc_url=None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)
    application.include_router(api_router)

    @application.get("/health")
    async def _health() -> dict:
        return {"ok": True, "service": settings.app_name, "version": settings.app_version}

    @application.on_event("startup")
    # Check the reminder tables once so misconfiguration shows up in the logs early
    async def _verify_store() -> None:
        from .services.supabase_client import verify_reminder_tables

        logger.info(f"{settings.app_name} starting up...")
        if not settings.cron_secret:
            logger.warning("CRON_SECRET not set; the cron trigger endpoint is unauthenticated")
        verify_reminder_tables()

    return application


configure_logging()
app = create_app()


__all__ = ["app", "create_app"]
