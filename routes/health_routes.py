"""
RollCall – Health & info routes.
"""

import logging

from fastapi import APIRouter

from config import config
from database import test_connection
from schema_context import DEFAULT_SCHEMA
from schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


# ---------------------------------------------------------------------------
# GET /api/health
# ---------------------------------------------------------------------------
@router.get("/health", response_model=HealthResponse)
async def health():
    """Quick liveness check – confirms DB connectivity and reports which settings are present."""
    try:
        await test_connection()
        db_status = "ok"
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        db_status = "unreachable"

    return HealthResponse(
        status="ok",
        db=db_status,
        model=config.GEMINI_MODEL,
        config=config.get_config_status(),
    )


# ---------------------------------------------------------------------------
# GET /api/schema
# ---------------------------------------------------------------------------
@router.get("/schema")
async def get_schema():
    """Return the schema description handed to SQL synthesis (useful for debugging)."""
    return {"schema": DEFAULT_SCHEMA}
