from __future__ import annotations

import json

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .logging_config import configure_logging, get_logger
from .routes import api_router
from .utils.responses import error_response

logger = get_logger(__name__)


# Register global exception handlers for consistent error responses across the API
def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.debug("validation error", extra={"errors": exc.errors(), "path": str(request.url)})
        return error_response(
            "Invalid request",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=json.loads(json.dumps(exc.errors(), default=str)),
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
        return error_response(detail, exc.status_code)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": str(request.url)})
        return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


configure_logging()
_settings = get_settings()

app = FastAPI(
    title=_settings.app_name,
    version=_settings.app_version,
    docs_url=_settings.resolved_docs_url,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router)


@app.on_event("startup")
# Start the default user's reminder session when the app starts
async def _start_services() -> None:
    logger.info("💊 Medication reminder service starting up...")

    try:
        from .services.background_services import get_background_manager
        from .services.supabase_client import verify_store_tables

        if not await verify_store_tables():
            logger.warning("Medication store unavailable; reminders will stay empty until it is reachable")

        await get_background_manager().start_services()
        logger.info("✅ Medication reminder service startup completed")

    except Exception:
        logger.exception("❌ Error during startup")


@app.on_event("shutdown")
# Gracefully stop every notification session when the app stops
async def _stop_services() -> None:
    logger.info("Medication reminder service shutting down...")

    try:
        from .services.background_services import get_background_manager

        await get_background_manager().stop_services()
        logger.info("Medication reminder service shutdown completed")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


__all__ = ["app"]
