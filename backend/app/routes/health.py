"""
Caisse Backend — Health Check Routes
======================================

What:  Liveness text at `/` and a database probe at `/health`.
Who:   Load balancers, container health checks, humans with curl.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from app.database import Database, get_database
from app.exceptions import StorageError
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/", response_class=PlainTextResponse, summary="Liveness text")
async def root() -> str:
    return "Caisse backend OK"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Reports whether the SQLite database answers and where it lives.",
)
async def health_check(db: Database = Depends(get_database)) -> HealthResponse:
    """
    Probe the database with SELECT 1.

    Always answers 200; `ok` is false when the probe fails.
    """
    try:
        ok = await db.ping()
    except StorageError as exc:
        ok = False
        logger.warning("Health check: database unreachable: %s", exc.context.get("detail"))

    return HealthResponse(ok=ok, db="sqlite", path=db.path)
