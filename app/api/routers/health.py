"""
Probes for the container orchestrator.

- /health and /health/live: the process is up
- /health/ready: the ledger store answers and the Stripe breaker is reported
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_session
from app.infrastructure.circuit_breaker import stripe_breaker

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "escrow-payments-api"


def _alive() -> dict:
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/health")
async def health_check():
    return _alive()


@router.get("/health/live")
async def health_check_live():
    return _alive()


@router.get("/health/ready")
async def health_check_ready(session: AsyncSession | None = Depends(get_session)):
    """
    Readiness probe.

    An open Stripe circuit is reported but does not fail readiness: reads and
    webhooks keep working while the processor is degraded. Only an unreachable
    database answers 503.
    """
    checks: dict[str, str] = {"stripe_circuit": stripe_breaker.current_state}

    if session is None:
        checks["database"] = "in_memory"
        return {"status": "ready", "checks": checks}

    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Ledger database unreachable", exc_info=e, extra={"probe": "ready"})
        checks["database"] = "unhealthy"
        return JSONResponse(status_code=503, content={"status": "not_ready", "checks": checks})

    checks["database"] = "healthy"
    return {"status": "ready", "checks": checks}
