"""Pydantic record types -- one typed struct per backing-store table.

Every field is a string because the backing store holds plain cell text;
empty string means "not set". Field order is the canonical column order
used when a table is bootstrapped (see records.tables).

Defines:
- Enums: DealStatus, UserRole, UserStatus, PartnerStatus, AdminStatus, AuditAction
- Records: DealRecord, CustomerRecord, PartnerRecord, UserRecord,
  AdminEntry, AuditLogEntry
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


# ── Enums ───────────────────────────────────────────────────────────────────


class DealStatus(str, Enum):
    """Deal lifecycle states; approved and rejected are terminal."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class UserRole(str, Enum):
    PARTNER_USER = "partner_user"
    ADMIN = "admin"


class UserStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"


class PartnerStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"


class AdminStatus(str, Enum):
    ACTIVE = "active"
    REMOVED = "removed"


class AuditAction(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


# ── Records ─────────────────────────────────────────────────────────────────


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)


class DealRecord(_Record):
    """A partner deal registration."""

    id: str = ""
    partner_id: str = ""
    customer_id: str = ""
    submitter_id: str = ""
    status: str = DealStatus.SUBMITTED.value
    partner_company: str = ""
    submitter_name: str = ""
    submitter_email: str = ""
    territory: str = ""
    company_name: str = ""
    domain: str = ""
    customer_legal_name: str = ""
    customer_industry: str = ""
    customer_location: str = ""
    deal_stage: str = ""
    expected_close_date: str = ""
    deal_value: str = ""
    contract_type: str = ""
    primary_product: str = ""
    additional_notes: str = ""
    uploaded_files: str = ""
    agreed_to_terms: str = ""
    approved_by: str = ""  # Also records the rejecting admin
    approved_at: str = ""
    rejection_reason: str = ""
    created_at: str = ""
    updated_at: str = ""


class CustomerRecord(_Record):
    """End customer; `domain` is the de-duplication key."""

    id: str = ""
    company_name: str = ""
    domain: str = ""
    legal_name: str = ""
    industry: str = ""
    location: str = ""
    country: str = ""
    created_at: str = ""
    updated_at: str = ""


class PartnerRecord(_Record):
    """Reseller company a user belongs to; created on first registration."""

    id: str = ""
    company_name: str = ""
    type: str = "reseller"
    territory: str = ""
    status: str = PartnerStatus.PENDING.value
    primary_contact_name: str = ""
    primary_contact_email: str = ""
    primary_contact_phone: str = ""
    website: str = ""
    created_at: str = ""
    updated_at: str = ""


class UserRecord(_Record):
    """Portal user. password_hash is empty for externally-authenticated users."""

    id: str = ""
    partner_id: str = ""
    email: str = ""
    password_hash: str = ""
    first_name: str = ""
    last_name: str = ""
    role: str = UserRole.PARTNER_USER.value
    status: str = UserStatus.PENDING.value
    last_login: str = ""
    email_verified: str = "false"
    external_subject: str = ""
    created_at: str = ""
    updated_at: str = ""


class AdminEntry(_Record):
    """Dynamic admin grant, independent of UserRecord.role."""

    email: str = ""
    added_by: str = ""
    added_at: str = ""
    status: str = AdminStatus.ACTIVE.value


class AuditLogEntry(_Record):
    """Append-only record of a deal decision."""

    id: str = ""
    deal_id: str = ""
    actor_email: str = ""
    action: str = ""
    timestamp: str = ""
    note: str = ""
