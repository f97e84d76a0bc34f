"""Pydantic schemas for deal submission, duplicate checks and reporting."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DealSubmission(BaseModel):
    """Deal registration payload.

    Fields are permissive on purpose; DealLifecycle.submit decides which are
    required so the same rules apply to every caller.
    Accepts camelCase keys (the partner portal's wire format) as well as
    field names; numeric values such as dealValue are kept as text.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    # Quick check
    company_name: str = ""
    domain: str = ""

    # Core info
    partner_company: str = ""
    submitter_name: str = ""
    submitter_email: str = ""
    territory: str = ""
    customer_legal_name: str = ""
    customer_industry: str = ""
    customer_location: str = ""

    # Deal intelligence
    deal_stage: str = ""
    expected_close_date: str = ""
    deal_value: str = ""
    contract_type: str = ""
    primary_product: str = ""

    # Documentation
    additional_notes: str = ""
    uploaded_files: list[Any] = Field(default_factory=list)
    agreed_to_terms: bool = False


class DuplicateCheckResult(BaseModel):
    has_duplicates: bool = False
    duplicates: list[dict[str, str]] = Field(default_factory=list)


class SubmissionResult(BaseModel):
    deal_id: str
    customer_id: str
    status: str
    estimated_approval_time: str
    next_steps: list[str] = Field(default_factory=list)


class DecisionResult(BaseModel):
    """Outcome of an approve or reject call."""

    deal_id: str
    status: str
    decided_by: str
    decided_at: str
    rejection_reason: str = ""


class DealStats(BaseModel):
    total: int = 0
    submitted: int = 0
    approved: int = 0
    rejected: int = 0
    total_value: float = 0.0
    average_approval_time_hours: float = 0.0
