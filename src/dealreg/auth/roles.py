"""Admin-role policy.

Three independent sources can grant the admin role:
- the static operator allowlist from configuration,
- the User.role column,
- an active entry in the dynamic admin registry.

Callers never check these individually. RoleResolver is the one policy
lookup: it consults every source (cheapest first) and grants admin if any
source does.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

import structlog

from src.dealreg.records.schemas import UserRecord, UserRole

if TYPE_CHECKING:
    from src.dealreg.auth.admin_registry import AdminRegistry

logger = structlog.get_logger(__name__)


class RoleSource(ABC):
    """One source of truth that may grant the admin role."""

    name: str = "unnamed"

    @abstractmethod
    async def grants_admin(self, user: UserRecord) -> bool:
        ...


class StaticAllowlistSource(RoleSource):
    name = "static_allowlist"

    def __init__(self, emails: Iterable[str]) -> None:
        self._emails = frozenset(e.strip().lower() for e in emails if e.strip())

    async def grants_admin(self, user: UserRecord) -> bool:
        return user.email.strip().lower() in self._emails


class UserRoleSource(RoleSource):
    name = "user_role"

    async def grants_admin(self, user: UserRecord) -> bool:
        return user.role == UserRole.ADMIN.value


class AdminRegistrySource(RoleSource):
    name = "admin_registry"

    def __init__(self, registry: AdminRegistry) -> None:
        self._registry = registry

    async def grants_admin(self, user: UserRecord) -> bool:
        return await self._registry.is_active_admin(user.email)


class RoleResolver:
    """Single role lookup composed of ordered RoleSources."""

    def __init__(self, sources: Sequence[RoleSource]) -> None:
        self._sources = list(sources)

    async def resolve(self, user: UserRecord) -> UserRole:
        for source in self._sources:
            if await source.grants_admin(user):
                logger.debug("role.admin_granted", source=source.name, user_id=user.id)
                return UserRole.ADMIN
        return UserRole.PARTNER_USER


def build_role_resolver(allowlist: Iterable[str], registry: AdminRegistry) -> RoleResolver:
    """The production policy: allowlist, then User.role, then the registry."""
    return RoleResolver(
        [
            StaticAllowlistSource(allowlist),
            UserRoleSource(),
            AdminRegistrySource(registry),
        ]
    )
