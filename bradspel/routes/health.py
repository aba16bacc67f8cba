"""
Bradspel Backend — Liveness and Health Routes
==============================================

What:  GET / and GET /ping answer as long as the process is up.
       GET /health also checks the database.
Who:   Docker health checks, load balancers, uptime monitors.

Status levels:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bradspel import __version__
from bradspel.database import get_db_session
from bradspel.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

ROOT_MESSAGE = "🎲 Board Game Backend API is running."

_start_time = time.time()


@router.get("/", response_class=PlainTextResponse, summary="Liveness message")
async def root() -> str:
    return ROOT_MESSAGE


@router.get("/ping", response_class=PlainTextResponse, summary="Liveness probe")
async def ping() -> str:
    return "pong"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> HealthResponse:
    """Runs SELECT 1 against the database; anything heavier would load the DB every probe."""
    db_status = "connected"
    overall = "healthy"

    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        await db.rollback()
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
