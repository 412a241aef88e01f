"""
Liveness and readiness probes.

Both are unauthenticated and never expose configuration or connection details.
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from devboard.core.database import get_engine
from devboard.core.logging import get_request_id, latency_bucket_ms

logger = logging.getLogger("devboard")

router = APIRouter(tags=["health"])

REQUIRED_TABLES = [
    "app_users",
    "activity_records",
    "todos",
    "challenges",
    "user_challenges",
]


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    start = time.perf_counter()
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")

        inspector = inspect(engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
    except (SQLAlchemyError, ValueError) as e:
        # ValueError: no DATABASE_URL configured
        logger.error(f"[readyz] readiness check failed: {e}", extra={"request_id": get_request_id()})
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    if missing:
        detail = f"missing tables: {', '.join(missing)}"
        logger.warning(f"[readyz] {detail}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

    logger.info(
        "health.ready",
        extra={"latency_bucket": latency_bucket_ms((time.perf_counter() - start) * 1000)},
    )
    return {"status": "ok"}
