"""Internal API routers — /order-intelligence and /status endpoints.

No business logic. Delegates to the ``OrderIntelligence`` orchestrator
injected at startup.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from tradegate.orchestrator import missing_fields

logger = logging.getLogger("tradegate")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_intelligence = None  # Set via configure_routers()
_started_at: Optional[datetime] = None
_evaluations = 0


def configure_routers(intelligence=None) -> None:
    """Inject dependencies from the application startup.

    Args:
        intelligence: An ``OrderIntelligence`` instance (or duck-type for tests).
    """
    global _intelligence, _started_at, _evaluations  # noqa: PLW0603
    _intelligence = intelligence
    _started_at = datetime.now(timezone.utc)
    _evaluations = 0


@router.get("/status")
async def get_status():
    """Service status: whether the orchestrator is wired and how busy it has been."""
    uptime = None
    if _started_at is not None:
        uptime = int((datetime.now(timezone.utc) - _started_at).total_seconds())
    return {
        "configured": _intelligence is not None,
        "evaluations": _evaluations,
        "uptime_seconds": uptime,
    }


@router.post("/order-intelligence")
async def post_order_intelligence(body: dict):
    """Evaluate a proposed order.

    Body: ``{symbol, exchange, instrumentType, transactionType, spotPrice,
    productType, includeStructure?, includePattern?, includeStation?,
    includeOI?}``.  Always 200 once the required fields are present;
    collaborator failures only degrade fields of the payload.
    """
    global _evaluations  # noqa: PLW0603

    missing = missing_fields(body)
    if missing:
        return JSONResponse(
            status_code=400,
            content={"error": f"{' and '.join(missing)} required"},
        )
    if _intelligence is None:
        return JSONResponse(
            status_code=503,
            content={"error": "Order intelligence is not configured"},
        )

    result = await _intelligence.evaluate(body)
    _evaluations += 1
    return result
