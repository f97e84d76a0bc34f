"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready). Readiness reads
the Deals header so a missing spreadsheet or bad credentials surface as 503.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.dealreg.config import get_settings
from src.dealreg.core.errors import DealRegError
from src.dealreg.records.tables import DEALS

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No external dependencies are checked."""
    settings = get_settings()
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT.value,
        "store_backend": settings.STORE_BACKEND.value,
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: verifies the backing store answers and has a Deals header."""
    checks: dict = {"store": "ok"}
    store = getattr(request.app.state, "store", None)
    if store is None:
        checks["store"] = "not_initialized"
    else:
        try:
            if not await store.get_header(DEALS.name):
                checks["store"] = "no_header"
        except DealRegError as e:
            checks["store"] = "error"
            checks["store_error"] = e.message

    healthy = checks["store"] == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if healthy else "degraded", "checks": checks},
    )
