"""Admin endpoints: the review queue, deal decisions, statistics and the
dynamic admin registry. Every route requires the admin role."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.dealreg.api.deps import get_admin_registry, get_lifecycle, require_admin
from src.dealreg.auth.admin_registry import AdminRegistry
from src.dealreg.auth.schemas import Principal
from src.dealreg.deals.lifecycle import DealLifecycle
from src.dealreg.deals.schemas import DealStats, DecisionResult
from src.dealreg.records.schemas import AdminEntry, DealRecord

router = APIRouter(prefix="/admin", tags=["admin"])


# ── Request / Response Schemas ───────────────────────────────────────────────


class ApproveRequest(BaseModel):
    approver_name: str | None = None


class RejectRequest(BaseModel):
    rejection_reason: str = ""
    approver_name: str | None = None


class AdminEmailRequest(BaseModel):
    email: str


class PendingDealsResponse(BaseModel):
    deals: list[DealRecord] = Field(default_factory=list)
    total: int = 0


class AdminListResponse(BaseModel):
    admins: list[AdminEntry] = Field(default_factory=list)
    total: int = 0


# ── Deal Review ──────────────────────────────────────────────────────────────


@router.get("/pending-deals", response_model=PendingDealsResponse)
async def pending_deals(
    admin: Principal = Depends(require_admin),
    lifecycle: DealLifecycle = Depends(get_lifecycle),
) -> PendingDealsResponse:
    """Submitted deals awaiting a decision, newest first."""
    deals = await lifecycle.list_pending()
    return PendingDealsResponse(deals=deals, total=len(deals))


@router.get("/deals/stats", response_model=DealStats)
async def deal_stats(
    admin: Principal = Depends(require_admin),
    lifecycle: DealLifecycle = Depends(get_lifecycle),
) -> DealStats:
    return await lifecycle.stats()


@router.post("/deals/{deal_id}/approve", response_model=DecisionResult)
async def approve_deal(
    deal_id: str,
    body: ApproveRequest | None = None,
    admin: Principal = Depends(require_admin),
    lifecycle: DealLifecycle = Depends(get_lifecycle),
) -> DecisionResult:
    approver_name = body.approver_name if body else None
    return await lifecycle.approve(deal_id, admin, approver_name=approver_name)


@router.post("/deals/{deal_id}/reject", response_model=DecisionResult)
async def reject_deal(
    deal_id: str,
    body: RejectRequest,
    admin: Principal = Depends(require_admin),
    lifecycle: DealLifecycle = Depends(get_lifecycle),
) -> DecisionResult:
    """Reject a submitted deal; `rejection_reason` is required."""
    return await lifecycle.reject(
        deal_id, admin, body.rejection_reason, approver_name=body.approver_name
    )


# ── Admin Registry ───────────────────────────────────────────────────────────


@router.get("/list", response_model=AdminListResponse)
async def list_admins(
    admin: Principal = Depends(require_admin),
    registry: AdminRegistry = Depends(get_admin_registry),
) -> AdminListResponse:
    entries = await registry.list_entries()
    return AdminListResponse(admins=entries, total=len(entries))


@router.post("/add", response_model=AdminEntry)
async def add_admin(
    body: AdminEmailRequest,
    admin: Principal = Depends(require_admin),
    registry: AdminRegistry = Depends(get_admin_registry),
) -> AdminEntry:
    return await registry.add(body.email, admin)


@router.post("/remove", response_model=AdminEntry)
async def remove_admin(
    body: AdminEmailRequest,
    admin: Principal = Depends(require_admin),
    registry: AdminRegistry = Depends(get_admin_registry),
) -> AdminEntry:
    return await registry.remove(body.email, admin)
