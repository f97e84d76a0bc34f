"""Deal lifecycle -- submission, approval and rejection of partner deals.

State machine:

    submitted --approve--> approved   (terminal)
    submitted --reject---> rejected   (terminal)

Transitions are one-way and single-shot: once a deal has left `submitted`,
any further approve or reject raises InvalidTransition and writes nothing.
approved_by / approved_at / rejection_reason stay empty until a terminal
transition; on rejection approved_by records the rejecting admin.

Every decision appends exactly one AuditLogEntry after the status write.
The two writes are not atomic: if the audit append fails the deal keeps its
new status and StoreUnavailable reaches the caller.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone

import structlog

from src.dealreg.auth.schemas import Principal
from src.dealreg.core.errors import (
    DuplicateConflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from src.dealreg.deals.customers import CustomerResolver
from src.dealreg.deals.duplicates import DuplicateDetector
from src.dealreg.deals.schemas import (
    DealStats,
    DealSubmission,
    DecisionResult,
    SubmissionResult,
)
from src.dealreg.records.repository import Repositories
from src.dealreg.records.schemas import AuditAction, AuditLogEntry, DealRecord, DealStatus

logger = structlog.get_logger(__name__)

# ── Transition Rules ────────────────────────────────────────────────────────

VALID_TRANSITIONS: dict[DealStatus, set[DealStatus]] = {
    DealStatus.SUBMITTED: {DealStatus.APPROVED, DealStatus.REJECTED},
    DealStatus.APPROVED: set(),  # Terminal
    DealStatus.REJECTED: set(),  # Terminal
}

REQUIRED_SUBMISSION_FIELDS: tuple[str, ...] = (
    "company_name",
    "domain",
    "partner_company",
    "submitter_name",
    "submitter_email",
)

DEFAULT_LIST_LIMIT = 50

NEXT_STEPS: list[str] = [
    "Deal submitted for review",
    "You will receive an email confirmation shortly",
    "Approval typically takes 24-48 hours",
    "Contact your partner manager for urgent requests",
]


def validate_transition(current: str, target: DealStatus) -> None:
    """Raise InvalidTransition unless `current` may move to `target`."""
    try:
        current_status = DealStatus(current)
    except ValueError:
        raise InvalidTransition(
            f"Deal status is '{current}'. Only submitted deals can be "
            f"{target.value}.",
            detail={"current_status": current, "target_status": target.value},
        )
    if target not in VALID_TRANSITIONS[current_status]:
        raise InvalidTransition(
            f"Deal status is '{current_status.value}'. Only submitted deals can be "
            f"{target.value}.",
            detail={"current_status": current_status.value, "target_status": target.value},
        )


def parse_deal_value(deal_value: str) -> float:
    """Numeric deal value; everything but digits and dots is stripped, junk is 0."""
    cleaned = re.sub(r"[^0-9.]", "", deal_value or "")
    try:
        return float(cleaned) if cleaned else 0.0
    except ValueError:
        return 0.0


def estimated_approval_time(deal_value: str) -> str:
    """Advisory approval band derived from the deal value."""
    value = parse_deal_value(deal_value)
    if value >= 500000:
        return "3-5 business days"
    if value >= 100000:
        return "2-3 business days"
    return "1-2 business days"


def _parse_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


# ── Lifecycle ───────────────────────────────────────────────────────────────


class DealLifecycle:
    """Enforces the deal state machine and emits the audit trail.

    Args:
        repositories: Entity repositories bound to the backing store.
        duplicate_detector: Advisory duplicate scan run before submission.
    """

    def __init__(
        self,
        repositories: Repositories,
        duplicate_detector: DuplicateDetector | None = None,
    ) -> None:
        self._repos = repositories
        self._detector = duplicate_detector or DuplicateDetector(repositories.deals)
        self._customers = CustomerResolver(repositories.customers)

    # ── Submission ──────────────────────────────────────────────────────────

    async def submit(self, submission: DealSubmission, actor: Principal) -> SubmissionResult:
        """Validate, check duplicates, resolve the customer and record the deal.

        Raises:
            ValidationError: Required field missing or terms not agreed.
            DuplicateConflict: A matching non-rejected deal exists; nothing written.
        """
        missing = [
            name
            for name in REQUIRED_SUBMISSION_FIELDS
            if not getattr(submission, name).strip()
        ]
        if missing:
            raise ValidationError(
                "Missing required fields",
                detail={"missing": missing, "required": list(REQUIRED_SUBMISSION_FIELDS)},
            )
        if not submission.agreed_to_terms:
            raise ValidationError(
                "Must agree to terms and conditions",
                detail={"missing": ["agreed_to_terms"]},
            )

        check = await self._detector.check_duplicates(
            submission.company_name, submission.domain
        )
        if check.has_duplicates:
            logger.info(
                "deal.submission_blocked",
                company_name=submission.company_name,
                domain=submission.domain,
                duplicates=len(check.duplicates),
            )
            raise DuplicateConflict(check.duplicates)

        customer = await self._customers.resolve_or_create(
            company_name=submission.company_name,
            domain=submission.domain,
            legal_name=submission.customer_legal_name,
            industry=submission.customer_industry,
            location=submission.customer_location,
        )

        deal = await self._repos.deals.create(
            DealRecord(
                partner_id=actor.partner_id,
                customer_id=customer.id,
                submitter_id=actor.user_id,
                status=DealStatus.SUBMITTED.value,
                partner_company=submission.partner_company,
                submitter_name=submission.submitter_name,
                submitter_email=submission.submitter_email,
                territory=submission.territory,
                company_name=submission.company_name,
                domain=submission.domain,
                customer_legal_name=submission.customer_legal_name,
                customer_industry=submission.customer_industry,
                customer_location=submission.customer_location,
                deal_stage=submission.deal_stage,
                expected_close_date=submission.expected_close_date,
                deal_value=submission.deal_value,
                contract_type=submission.contract_type,
                primary_product=submission.primary_product,
                additional_notes=submission.additional_notes,
                uploaded_files=(
                    json.dumps(submission.uploaded_files) if submission.uploaded_files else ""
                ),
                agreed_to_terms="true",
            )
        )

        logger.info(
            "deal.submitted",
            deal_id=deal.id,
            customer_id=customer.id,
            company_name=deal.company_name,
            submitter_id=actor.user_id,
        )
        return SubmissionResult(
            deal_id=deal.id,
            customer_id=customer.id,
            status=deal.status,
            estimated_approval_time=estimated_approval_time(submission.deal_value),
            next_steps=list(NEXT_STEPS),
        )

    # ── Decisions ───────────────────────────────────────────────────────────

    async def approve(
        self,
        deal_id: str,
        actor: Principal,
        approver_name: str | None = None,
    ) -> DecisionResult:
        """Move a submitted deal to approved and log it.

        Raises:
            Forbidden: Actor is not an admin.
            NotFound: Unknown deal id.
            InvalidTransition: Deal is not in `submitted`.
            ConcurrentModification: Deal changed between read and write.
        """
        self._require_admin(actor)
        deal = await self._load(deal_id)
        validate_transition(deal.status, DealStatus.APPROVED)

        decided_by = (approver_name or "").strip() or actor.email
        decided_at = self._repos.deals.now()
        await self._repos.deals.update_partial(
            deal.id,
            {
                "status": DealStatus.APPROVED.value,
                "approved_by": decided_by,
                "approved_at": decided_at,
            },
            expected_updated_at=deal.updated_at,
        )
        await self._repos.audit_log.create(
            AuditLogEntry(
                deal_id=deal.id,
                actor_email=actor.email,
                action=AuditAction.APPROVED.value,
                note=f"Deal approved by {decided_by}",
            )
        )

        logger.info("deal.approved", deal_id=deal.id, approved_by=decided_by)
        return DecisionResult(
            deal_id=deal.id,
            status=DealStatus.APPROVED.value,
            decided_by=decided_by,
            decided_at=decided_at,
        )

    async def reject(
        self,
        deal_id: str,
        actor: Principal,
        reason: str,
        approver_name: str | None = None,
    ) -> DecisionResult:
        """Move a submitted deal to rejected with a reason and log it.

        Raises:
            Forbidden: Actor is not an admin.
            ValidationError: Reason is empty or whitespace.
            NotFound: Unknown deal id.
            InvalidTransition: Deal is not in `submitted`.
            ConcurrentModification: Deal changed between read and write.
        """
        self._require_admin(actor)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError(
                "Rejection reason is required",
                detail={"missing": ["rejection_reason"]},
            )

        deal = await self._load(deal_id)
        validate_transition(deal.status, DealStatus.REJECTED)

        decided_by = (approver_name or "").strip() or actor.email
        decided_at = self._repos.deals.now()
        await self._repos.deals.update_partial(
            deal.id,
            {
                "status": DealStatus.REJECTED.value,
                "approved_by": decided_by,
                "approved_at": decided_at,
                "rejection_reason": reason,
            },
            expected_updated_at=deal.updated_at,
        )
        await self._repos.audit_log.create(
            AuditLogEntry(
                deal_id=deal.id,
                actor_email=actor.email,
                action=AuditAction.REJECTED.value,
                note=f"Deal rejected by {decided_by}: {reason}",
            )
        )

        logger.info("deal.rejected", deal_id=deal.id, rejected_by=decided_by)
        return DecisionResult(
            deal_id=deal.id,
            status=DealStatus.REJECTED.value,
            decided_by=decided_by,
            decided_at=decided_at,
            rejection_reason=reason,
        )

    # ── Queries ─────────────────────────────────────────────────────────────

    async def get_deal(self, deal_id: str) -> DealRecord:
        return await self._load(deal_id)

    async def list_deals(
        self,
        status: str | None = None,
        partner_company: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[DealRecord]:
        """Deals in store order, filtered, capped at `limit`."""
        if limit < 1:
            raise ValidationError("limit must be at least 1", detail={"limit": limit})

        results: list[DealRecord] = []
        for deal in await self._repos.deals.find_all():
            if status and deal.status != status:
                continue
            if partner_company and deal.partner_company != partner_company:
                continue
            results.append(deal)
            if len(results) >= limit:
                break
        return results

    async def list_pending(self) -> list[DealRecord]:
        """Submitted deals, newest first."""
        pending = [
            deal
            for deal in await self._repos.deals.find_all()
            if deal.status == DealStatus.SUBMITTED.value
        ]
        pending.sort(key=lambda deal: deal.created_at, reverse=True)
        return pending

    async def stats(self) -> DealStats:
        """Status counts, total value and mean hours from submission to decision."""
        deals = await self._repos.deals.find_all()
        stats = DealStats(total=len(deals))
        decision_hours: list[float] = []

        for deal in deals:
            if deal.status == DealStatus.SUBMITTED.value:
                stats.submitted += 1
            elif deal.status == DealStatus.APPROVED.value:
                stats.approved += 1
            elif deal.status == DealStatus.REJECTED.value:
                stats.rejected += 1

            stats.total_value += parse_deal_value(deal.deal_value)

            if deal.status in (DealStatus.APPROVED.value, DealStatus.REJECTED.value):
                created = _parse_timestamp(deal.created_at)
                decided = _parse_timestamp(deal.approved_at)
                if created and decided:
                    decision_hours.append((decided - created).total_seconds() / 3600)

        if decision_hours:
            stats.average_approval_time_hours = round(
                sum(decision_hours) / len(decision_hours), 2
            )
        return stats

    # ── Helpers ─────────────────────────────────────────────────────────────

    async def _load(self, deal_id: str) -> DealRecord:
        deal = await self._repos.deals.get(deal_id) if deal_id else None
        if deal is None:
            raise NotFound(f"Deal not found: {deal_id}", detail={"deal_id": deal_id})
        return deal

    @staticmethod
    def _require_admin(actor: Principal) -> None:
        if not actor.is_admin:
            raise Forbidden("You do not have admin permissions")
