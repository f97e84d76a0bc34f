"""Pydantic schemas for identities and sessions."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.dealreg.records.schemas import UserRole


class Principal(BaseModel):
    """The authenticated caller of a request, with its role resolved."""

    user_id: str
    email: str
    role: UserRole = UserRole.PARTNER_USER
    partner_id: str = ""
    first_name: str = ""
    last_name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email


class ExternalIdentity(BaseModel):
    """Identity already verified by an external provider (e.g. Google OAuth)."""

    subject: str = Field(..., min_length=1, description="Provider's stable user id")
    email: str = Field(..., min_length=3)
    name: str = ""
    given_name: str = ""
    family_name: str = ""


class UserSummary(BaseModel):
    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    role: str
    status: str
    partner_id: str = ""
    partner_name: str = ""


class SessionResult(BaseModel):
    """Issued session: bearer token plus the user it belongs to."""

    access_token: str
    token_type: str = "bearer"
    user: UserSummary
