# This project was developed with assistance from AI tools.
"""Liveness and readiness probes."""

from db import get_db_service
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/")
async def liveness() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
async def readiness() -> JSONResponse:
    """Report 503 until the database answers."""
    healthy = await get_db_service().health_check()
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ok" if healthy else "unavailable", "database": healthy},
    )
