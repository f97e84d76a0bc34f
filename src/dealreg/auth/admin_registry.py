"""Dynamic admin registry backed by the Admins table.

Entries are never deleted: removal flips status to `removed` and a later
add re-activates the same row in place.
"""

from __future__ import annotations

import re

import structlog

from src.dealreg.auth.schemas import Principal
from src.dealreg.core.errors import Forbidden, NotFound, ValidationError
from src.dealreg.records.repository import AdminRepository
from src.dealreg.records.schemas import AdminEntry, AdminStatus

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    """Trim and lower-case an email, rejecting malformed input."""
    normalized = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValidationError(
            "Please enter a valid email address",
            detail={"email": email},
        )
    return normalized


class AdminRegistry:
    def __init__(self, admins: AdminRepository) -> None:
        self._admins = admins

    async def list_entries(self) -> list[AdminEntry]:
        """Active entries in store order."""
        return [
            entry
            for entry in await self._admins.find_all()
            if entry.status == AdminStatus.ACTIVE.value
        ]

    async def is_active_admin(self, email: str) -> bool:
        if not email:
            return False
        entry = await self._admins.find_by_email(email)
        return entry is not None and entry.status == AdminStatus.ACTIVE.value

    async def add(self, email: str, actor: Principal) -> AdminEntry:
        """Grant admin to `email`.

        Raises:
            Forbidden: Actor is not an admin.
            ValidationError: Malformed email, or the email is already an active admin.
        """
        _require_admin(actor)
        normalized = normalize_email(email)

        existing = await self._admins.find_by_email(normalized)
        if existing is not None:
            if existing.status == AdminStatus.ACTIVE.value:
                raise ValidationError(
                    f"{normalized} is already an admin",
                    detail={"email": normalized},
                )
            entry = await self._admins.update_partial(
                existing.email,
                {
                    "email": normalized,
                    "status": AdminStatus.ACTIVE.value,
                    "added_by": actor.email,
                    "added_at": self._admins.now(),
                },
            )
            logger.info("admin_registry.reactivated", email=normalized, added_by=actor.email)
            return entry

        entry = await self._admins.create(
            AdminEntry(email=normalized, added_by=actor.email, status=AdminStatus.ACTIVE.value)
        )
        logger.info("admin_registry.added", email=normalized, added_by=actor.email)
        return entry

    async def remove(self, email: str, actor: Principal) -> AdminEntry:
        """Revoke a registry grant. Allowlist and User.role grants are unaffected.

        Raises:
            Forbidden: Actor is not an admin.
            NotFound: No active registry entry for `email`.
        """
        _require_admin(actor)
        normalized = (email or "").strip().lower()

        existing = await self._admins.find_by_email(normalized) if normalized else None
        if existing is None or existing.status != AdminStatus.ACTIVE.value:
            raise NotFound(f"Admin not found: {email}", detail={"email": email})

        entry = await self._admins.update_partial(
            existing.email, {"status": AdminStatus.REMOVED.value}
        )
        logger.info("admin_registry.removed", email=normalized, removed_by=actor.email)
        return entry


def _require_admin(actor: Principal) -> None:
    if not actor.is_admin:
        raise Forbidden("You do not have admin permissions")
