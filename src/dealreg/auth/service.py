"""User registration and login.

Partners are created lazily: password registration finds or creates the
partner by company name, external login by the email domain. Password users
start `pending` and cannot log in until activated; externally-verified users
are created `active` with an empty password hash.
"""

from __future__ import annotations

import structlog

from src.dealreg.auth.admin_registry import normalize_email
from src.dealreg.auth.roles import RoleResolver
from src.dealreg.auth.schemas import ExternalIdentity, SessionResult, UserSummary
from src.dealreg.core.errors import Unauthenticated, ValidationError
from src.dealreg.core.security import create_access_token, hash_password, verify_password
from src.dealreg.records.repository import Repositories
from src.dealreg.records.schemas import (
    PartnerRecord,
    PartnerStatus,
    UserRecord,
    UserRole,
    UserStatus,
)

logger = structlog.get_logger(__name__)

DEFAULT_PARTNER_TYPE = "reseller"
DEFAULT_EXTERNAL_TERRITORY = "North America"


class AuthService:
    def __init__(self, repositories: Repositories, role_resolver: RoleResolver) -> None:
        self._repos = repositories
        self._roles = role_resolver

    async def register_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        partner_company: str = "",
        territory: str = "",
    ) -> UserSummary:
        """Create a pending partner user, creating the partner if needed.

        Raises:
            ValidationError: Missing field, malformed email or email already registered.
        """
        missing = [
            name
            for name, value in (
                ("email", email),
                ("password", password),
                ("first_name", first_name),
                ("last_name", last_name),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise ValidationError("Missing required fields", detail={"missing": missing})

        normalized = normalize_email(email)
        if await self._repos.users.find_by_email(normalized) is not None:
            raise ValidationError(
                "User already exists with this email",
                detail={"email": normalized},
            )

        company = partner_company.strip() or normalized.split("@", 1)[1]
        partner = await self._find_or_create_partner(
            company_name=company,
            territory=territory,
            contact_name=f"{first_name} {last_name}".strip(),
            contact_email=normalized,
        )

        user = await self._repos.users.create(
            UserRecord(
                partner_id=partner.id,
                email=normalized,
                password_hash=hash_password(password),
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                role=UserRole.PARTNER_USER.value,
                status=UserStatus.PENDING.value,
                email_verified="false",
            )
        )
        logger.info("auth.user_registered", user_id=user.id, partner_id=partner.id)
        return self._summary(user, partner)

    async def login(self, email: str, password: str) -> SessionResult:
        """Password login.

        Raises:
            Unauthenticated: Unknown or inactive user, no password set, or bad password.
        """
        user = await self._repos.users.find_by_email(email or "")
        if user is None or user.status != UserStatus.ACTIVE.value:
            raise Unauthenticated("Invalid credentials or account not active")
        if not verify_password(password or "", user.password_hash):
            logger.warning("auth.login_failed", user_id=user.id)
            raise Unauthenticated("Invalid credentials")

        user = await self._repos.users.update_partial(
            user.id, {"last_login": self._repos.users.now()}
        )
        logger.info("auth.login", user_id=user.id, method="password")
        return await self.issue_session(user)

    async def external_login(self, identity: ExternalIdentity) -> SessionResult:
        """Log in a user whose identity an external provider already verified."""
        email = normalize_email(identity.email)
        user = await self._repos.users.find_by_email(email)

        if user is None:
            domain = email.split("@", 1)[1]
            partner = await self._find_or_create_partner(
                company_name=domain,
                territory=DEFAULT_EXTERNAL_TERRITORY,
                contact_name=identity.name,
                contact_email=email,
            )
            user = await self._repos.users.create(
                UserRecord(
                    partner_id=partner.id,
                    email=email,
                    password_hash="",
                    first_name=identity.given_name or identity.name,
                    last_name=identity.family_name,
                    role=UserRole.PARTNER_USER.value,
                    status=UserStatus.ACTIVE.value,
                    last_login=self._repos.users.now(),
                    email_verified="true",
                    external_subject=identity.subject,
                )
            )
            logger.info("auth.external_user_created", user_id=user.id, partner_id=partner.id)
        else:
            user = await self._repos.users.update_partial(
                user.id, {"last_login": self._repos.users.now()}
            )

        logger.info("auth.login", user_id=user.id, method="external")
        return await self.issue_session(user)

    async def issue_session(self, user: UserRecord) -> SessionResult:
        """Sign a session token carrying id, email, role and partner."""
        role = await self._roles.resolve(user)
        token = create_access_token(
            {
                "sub": user.id,
                "email": user.email,
                "role": role.value,
                "partner_id": user.partner_id,
            }
        )
        partner = await self._repos.partners.get(user.partner_id) if user.partner_id else None
        summary = self._summary(user, partner)
        summary.role = role.value
        return SessionResult(access_token=token, user=summary)

    async def _find_or_create_partner(
        self,
        company_name: str,
        territory: str,
        contact_name: str,
        contact_email: str,
    ) -> PartnerRecord:
        partner = await self._repos.partners.find_by_company_name(company_name)
        if partner is not None:
            return partner
        partner = await self._repos.partners.create(
            PartnerRecord(
                company_name=company_name,
                type=DEFAULT_PARTNER_TYPE,
                territory=territory,
                status=PartnerStatus.PENDING.value,
                primary_contact_name=contact_name,
                primary_contact_email=contact_email,
            )
        )
        logger.info("auth.partner_created", partner_id=partner.id, company_name=company_name)
        return partner

    @staticmethod
    def _summary(user: UserRecord, partner: PartnerRecord | None) -> UserSummary:
        return UserSummary(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            status=user.status,
            partner_id=user.partner_id,
            partner_name=partner.company_name if partner else "Unknown Partner",
        )
