"""Request authentication -- signed session token to resolved Principal.

The token alone proves identity (signature + expiry). The gateway then loads
the user once per request to require an active account and resolves the role
fresh through RoleResolver, so a revoked registry grant takes effect on the
next request rather than at token expiry.
"""

from __future__ import annotations

import structlog

from src.dealreg.auth.roles import RoleResolver
from src.dealreg.auth.schemas import Principal
from src.dealreg.core.errors import Forbidden, Unauthenticated
from src.dealreg.core.security import verify_token
from src.dealreg.records.repository import UserRepository
from src.dealreg.records.schemas import UserStatus

logger = structlog.get_logger(__name__)


class AuthGateway:
    def __init__(self, users: UserRepository, role_resolver: RoleResolver) -> None:
        self._users = users
        self._roles = role_resolver

    async def authenticate(self, token: str | None) -> Principal:
        """Verify `token` and return the caller.

        Raises:
            Unauthenticated: Missing, invalid or expired token, or the user
                is unknown or not active.
        """
        if not token:
            raise Unauthenticated("Access token required")

        payload = verify_token(token, token_type="access")
        user = await self._users.get(payload["sub"])
        if user is None or user.status != UserStatus.ACTIVE.value:
            logger.warning("auth.inactive_or_unknown_user", user_id=payload["sub"])
            raise Unauthenticated("User account not found or inactive")

        role = await self._roles.resolve(user)
        return Principal(
            user_id=user.id,
            email=user.email,
            role=role,
            partner_id=user.partner_id,
            first_name=user.first_name,
            last_name=user.last_name,
        )

    @staticmethod
    def require_admin(principal: Principal) -> Principal:
        if not principal.is_admin:
            raise Forbidden("You do not have admin permissions")
        return principal
