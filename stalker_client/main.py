from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stalker_client.config import setup_logging
from stalker_client.dependencies import get_portal_client
from stalker_client.exceptions import (
    AuthError,
    DeviceConflict,
    FetchError,
    NoActiveProfile,
    PortalClientError,
    ResolveError,
)
from stalker_client.schemas import ErrorDetail, StandardErrorResponse

from stalker_client.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting Stalker Portal Client...")

    client = get_portal_client()
    try:
        client.keepalive.start()
    except Exception as e:
        logger.error(f"Failed to start keepalive: {e}", exc_info=True)
        raise

    logger.info("Stalker Portal Client started successfully")

    yield

    logger.info("Shutting down Stalker Portal Client...")
    try:
        await client.aclose()
    except Exception as e:
        logger.error(f"Error during client shutdown: {e}", exc_info=True)

    logger.info("Stalker Portal Client stopped")


app = FastAPI(
    title="Stalker Portal Client",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)


def status_code_for(exc: PortalClientError) -> int:
    """HTTP status for a portal client error"""
    if isinstance(exc, DeviceConflict):
        return 409
    if isinstance(exc, AuthError):
        return 401
    if isinstance(exc, NoActiveProfile):
        return 409
    if isinstance(exc, (FetchError, ResolveError)):
        return 502
    return 500


def error_response(request: Request, status_code: int, code: str, message: str, **context) -> JSONResponse:
    """Build a StandardErrorResponse body for the failed request"""
    body = StandardErrorResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        error=ErrorDetail(
            code=code,
            message=message,
            context={"path": request.url.path, **context},
        ),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(PortalClientError)
async def portal_exception_handler(request: Request, exc: PortalClientError):
    """Render portal client errors as standard error responses"""
    logger.warning(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return error_response(request, status_code_for(exc), exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request validation failures in the standard error shape"""
    fields = [
        {
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    logger.warning(f"{request.method} {request.url.path} rejected: {len(fields)} invalid field(s)")
    logger.debug(f"Validation details: {fields}")

    return error_response(
        request,
        422,
        "VALIDATION_ERROR",
        "Request validation failed",
        fields=fields,
    )
