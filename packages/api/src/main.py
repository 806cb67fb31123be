# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager

from db import get_db_service
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .routes import compliance, health
from .schemas.error import ErrorResponse
from .services.compliance.cache import install_invalidation_hooks
from .services.compliance.errors import InvalidComplianceInput, SourceUnavailable

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application startup/shutdown lifecycle."""
    if settings.COMPLIANCE_CACHE_ENABLED:
        install_invalidation_hooks()
    logger.info(
        "%s starting (expiring-soon window %d days, cache %s)",
        settings.APP_NAME,
        settings.COMPLIANCE_EXPIRING_SOON_DAYS,
        "on" if settings.COMPLIANCE_CACHE_ENABLED else "off",
    )
    yield
    await get_db_service().dispose()


app = FastAPI(
    title="Document Compliance API",
    description="HR document requirement resolution and compliance tracking",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    expose_headers=[compliance.DATA_ISSUES_HEADER],
)

_HTTP_STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _build_error(
    status_code: int,
    detail: str,
    request_id: str,
    error_type: str = "about:blank",
    source: str | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        type=error_type,
        title=_HTTP_STATUS_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        request_id=request_id,
        source=source,
    )


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", str(uuid.uuid4()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPException to RFC 7807 Problem Details."""
    body = _build_error(exc.status_code, str(exc.detail), _request_id(request))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to RFC 7807 Problem Details."""
    body = _build_error(422, str(exc.errors()), _request_id(request))
    return JSONResponse(status_code=422, content=body.model_dump())


@app.exception_handler(SourceUnavailable)
async def source_unavailable_handler(request: Request, exc: SourceUnavailable):
    """Collaborator read failed -- 503, never a partial result."""
    request_id = _request_id(request)
    logger.error("Compliance source unavailable (request_id=%s): %s", request_id, exc)
    body = _build_error(
        503,
        "Compliance data source unavailable",
        request_id,
        "source_unavailable",
        source=exc.source,
    )
    return JSONResponse(status_code=503, content=body.model_dump())


@app.exception_handler(InvalidComplianceInput)
async def invalid_input_handler(request: Request, exc: InvalidComplianceInput):
    """Unknown organization or employee (404), other caller mistakes (422)."""
    body = _build_error(exc.status_code, str(exc), _request_id(request), "invalid_input")
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions -- log and return 500."""
    request_id = _request_id(request)
    logger.exception("Unhandled exception (request_id=%s)", request_id)
    body = _build_error(500, "An unexpected error occurred.", request_id)
    return JSONResponse(status_code=500, content=body.model_dump())


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(compliance.router, prefix="/api", tags=["compliance"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Document Compliance API"}
