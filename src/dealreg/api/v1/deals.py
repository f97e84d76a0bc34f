"""REST API endpoints for partner deal registration.

Submission, listing and lookup of deals. All endpoints require an
authenticated caller; business rules live in DealLifecycle.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from src.dealreg.api.deps import get_current_principal, get_lifecycle
from src.dealreg.auth.schemas import Principal
from src.dealreg.deals.lifecycle import DEFAULT_LIST_LIMIT, DealLifecycle
from src.dealreg.deals.schemas import DealSubmission, SubmissionResult
from src.dealreg.records.schemas import DealRecord

router = APIRouter(prefix="/deals", tags=["deals"])


# ── Response Schemas ─────────────────────────────────────────────────────────


class DealListResponse(BaseModel):
    deals: list[DealRecord] = Field(default_factory=list)
    total: int = 0
    filters: dict[str, Any] = Field(default_factory=dict)


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
async def submit_deal(
    body: DealSubmission,
    principal: Principal = Depends(get_current_principal),
    lifecycle: DealLifecycle = Depends(get_lifecycle),
) -> SubmissionResult:
    """Register a new deal. 409 with the conflicting deals on duplicates."""
    return await lifecycle.submit(body, principal)


@router.get("", response_model=DealListResponse)
async def list_deals(
    status_filter: str | None = Query(None, alias="status"),
    partner: str | None = Query(None),
    limit: int = Query(DEFAULT_LIST_LIMIT),
    principal: Principal = Depends(get_current_principal),
    lifecycle: DealLifecycle = Depends(get_lifecycle),
) -> DealListResponse:
    """List deals in store order, optionally filtered by status and partner company."""
    deals = await lifecycle.list_deals(
        status=status_filter, partner_company=partner, limit=limit
    )
    return DealListResponse(
        deals=deals,
        total=len(deals),
        filters={"status": status_filter, "partner": partner, "limit": limit},
    )


@router.get("/{deal_id}", response_model=DealRecord)
async def get_deal(
    deal_id: str,
    principal: Principal = Depends(get_current_principal),
    lifecycle: DealLifecycle = Depends(get_lifecycle),
) -> DealRecord:
    """Get a single deal by ID."""
    return await lifecycle.get_deal(deal_id)
