"""Authentication and authorization tests.

Tests token issue/verify, password hashing, the admin role policy, the
request gateway and the registration/login service.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from jose import jwt

from src.dealreg.auth.roles import (
    AdminRegistrySource,
    RoleResolver,
    RoleSource,
    StaticAllowlistSource,
    UserRoleSource,
)
from src.dealreg.auth.schemas import ExternalIdentity
from src.dealreg.core.errors import Forbidden, Unauthenticated, ValidationError
from src.dealreg.core.security import (
    create_access_token,
    hash_password,
    verify_password,
    verify_token,
)
from src.dealreg.records.schemas import AdminEntry, UserRecord, UserRole, UserStatus


# ── Password Hashing ──────────────────────────────────────────────────────────


def test_password_round_trip():
    hashed = hash_password("correct horse", rounds=4)
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed) is True
    assert verify_password("wrong horse", hashed) is False


def test_empty_or_malformed_hash_never_matches():
    assert verify_password("anything", "") is False
    assert verify_password("anything", "not-a-bcrypt-hash") is False


# ── Tokens ────────────────────────────────────────────────────────────────────


def test_token_round_trip():
    token = create_access_token({"sub": "u1", "email": "a@b.co", "role": "admin"})
    payload = verify_token(token)
    assert payload["sub"] == "u1"
    assert payload["type"] == "access"
    assert "exp" in payload


def test_expired_token_rejected():
    token = create_access_token({"sub": "u1"}, expires_delta=timedelta(seconds=-5))
    with pytest.raises(Unauthenticated, match="expired"):
        verify_token(token)


def test_bad_signature_rejected():
    forged = jwt.encode({"sub": "u1", "type": "access"}, "other-secret", algorithm="HS256")
    with pytest.raises(Unauthenticated):
        verify_token(forged)


def test_wrong_token_type_rejected():
    token = create_access_token({"sub": "u1"})
    with pytest.raises(Unauthenticated):
        verify_token(token, token_type="refresh")


def test_token_without_subject_rejected():
    token = create_access_token({"email": "a@b.co"})
    with pytest.raises(Unauthenticated):
        verify_token(token)


def test_garbage_token_rejected():
    with pytest.raises(Unauthenticated):
        verify_token("not.a.token")


# ── Role Policy ───────────────────────────────────────────────────────────────


def _user(email: str = "pat@partner.com", role: str = "partner_user") -> UserRecord:
    return UserRecord(id="u1", email=email, role=role, status="active")


class _RecordingSource(RoleSource):
    name = "recording"

    def __init__(self, grants: bool) -> None:
        self.grants = grants
        self.calls = 0

    async def grants_admin(self, user: UserRecord) -> bool:
        self.calls += 1
        return self.grants


class TestRoleResolver:
    async def test_allowlist_grants_admin_ignoring_case(self):
        source = StaticAllowlistSource(["Ops@Vendor.com", " "])
        assert await source.grants_admin(_user("ops@vendor.com")) is True
        assert await source.grants_admin(_user("other@vendor.com")) is False

    async def test_user_role_column_grants_admin(self):
        assert await UserRoleSource().grants_admin(_user(role="admin")) is True
        assert await UserRoleSource().grants_admin(_user()) is False

    async def test_registry_grants_only_active_entries(self, registry, repos):
        await repos.admins.create(AdminEntry(email="pat@partner.com", added_by="ops"))
        await repos.admins.create(
            AdminEntry(email="gone@partner.com", added_by="ops", status="removed")
        )
        source = AdminRegistrySource(registry)

        assert await source.grants_admin(_user("pat@partner.com")) is True
        assert await source.grants_admin(_user("gone@partner.com")) is False

    async def test_any_source_grants_admin(self):
        resolver = RoleResolver([_RecordingSource(False), _RecordingSource(True)])
        assert await resolver.resolve(_user()) == UserRole.ADMIN

    async def test_no_source_means_partner_user(self):
        resolver = RoleResolver([_RecordingSource(False), _RecordingSource(False)])
        assert await resolver.resolve(_user()) == UserRole.PARTNER_USER

    async def test_stops_at_first_granting_source(self):
        first, second = _RecordingSource(True), _RecordingSource(True)
        await RoleResolver([first, second]).resolve(_user())
        assert first.calls == 1
        assert second.calls == 0


# ── Gateway ───────────────────────────────────────────────────────────────────


def _token_for(user: UserRecord) -> str:
    return create_access_token({"sub": user.id, "email": user.email})


class TestAuthGateway:
    async def test_missing_token(self, gateway):
        with pytest.raises(Unauthenticated, match="required"):
            await gateway.authenticate(None)

    async def test_active_user_becomes_principal(self, gateway, user_factory):
        user = await user_factory("pat@partner.com")

        principal = await gateway.authenticate(_token_for(user))

        assert principal.user_id == user.id
        assert principal.email == "pat@partner.com"
        assert principal.partner_id == "partner-1"
        assert principal.is_admin is False

    async def test_pending_user_is_rejected(self, gateway, user_factory):
        user = await user_factory("new@partner.com", status=UserStatus.PENDING)
        with pytest.raises(Unauthenticated):
            await gateway.authenticate(_token_for(user))

    async def test_unknown_user_is_rejected(self, gateway):
        token = create_access_token({"sub": "ghost"})
        with pytest.raises(Unauthenticated):
            await gateway.authenticate(token)

    async def test_static_allowlist_user_is_admin(self, gateway, user_factory):
        user = await user_factory("ops@vendor.com")
        principal = await gateway.authenticate(_token_for(user))
        assert principal.role == UserRole.ADMIN

    async def test_role_column_admin(self, gateway, user_factory):
        user = await user_factory("lead@vendor.com", role=UserRole.ADMIN)
        principal = await gateway.authenticate(_token_for(user))
        assert principal.is_admin is True

    async def test_registry_grant_and_revocation_apply_per_request(
        self, gateway, registry, user_factory, admin
    ):
        user = await user_factory("pat@partner.com")
        token = _token_for(user)

        await registry.add("pat@partner.com", admin)
        assert (await gateway.authenticate(token)).is_admin is True

        await registry.remove("pat@partner.com", admin)
        assert (await gateway.authenticate(token)).is_admin is False

    def test_require_admin(self, gateway, admin, partner):
        assert gateway.require_admin(admin) is admin
        with pytest.raises(Forbidden):
            gateway.require_admin(partner)


# ── Registration and Login ────────────────────────────────────────────────────


class TestAuthService:
    async def test_register_creates_pending_user_and_partner(self, auth_service, repos):
        summary = await auth_service.register_user(
            email="Dana@Partner.com",
            password="pa55word",
            first_name="Dana",
            last_name="Lee",
            partner_company="Partner Co",
            territory="APAC",
        )

        assert summary.email == "dana@partner.com"
        assert summary.status == "pending"
        assert summary.role == "partner_user"
        assert summary.partner_name == "Partner Co"

        user = await repos.users.find_by_email("dana@partner.com")
        assert user.password_hash != "pa55word"
        assert verify_password("pa55word", user.password_hash)

        partner = await repos.partners.get(user.partner_id)
        assert partner.status == "pending"
        assert partner.type == "reseller"
        assert partner.territory == "APAC"
        assert partner.primary_contact_email == "dana@partner.com"

    async def test_second_user_reuses_partner(self, auth_service, store):
        first = await auth_service.register_user(
            "a@partner.com", "pw", "Ann", "A", partner_company="Partner Co"
        )
        second = await auth_service.register_user(
            "b@partner.com", "pw", "Ben", "B", partner_company="Partner Co"
        )

        assert first.partner_id == second.partner_id
        assert len(store.dump("Partners")) == 2

    async def test_register_duplicate_email(self, auth_service):
        await auth_service.register_user("a@partner.com", "pw", "Ann", "A", "Partner Co")
        with pytest.raises(ValidationError):
            await auth_service.register_user("A@partner.com", "pw", "Ann", "A", "Partner Co")

    async def test_register_missing_fields(self, auth_service):
        with pytest.raises(ValidationError) as exc_info:
            await auth_service.register_user("a@partner.com", "", "Ann", "")
        assert exc_info.value.detail["missing"] == ["password", "last_name"]

    async def test_register_malformed_email(self, auth_service):
        with pytest.raises(ValidationError):
            await auth_service.register_user("not-an-email", "pw", "Ann", "A")

    async def test_pending_user_cannot_login(self, auth_service):
        await auth_service.register_user("a@partner.com", "pw", "Ann", "A", "Partner Co")
        with pytest.raises(Unauthenticated):
            await auth_service.login("a@partner.com", "pw")

    async def test_active_user_login(self, auth_service, repos, user_factory):
        user = await user_factory("pat@partner.com", password="right-pw")

        session = await auth_service.login("PAT@partner.com", "right-pw")

        assert session.token_type == "bearer"
        assert session.user.id == user.id
        assert verify_token(session.access_token)["sub"] == user.id
        assert (await repos.users.get(user.id)).last_login

    async def test_wrong_password(self, auth_service, user_factory):
        await user_factory("pat@partner.com", password="right-pw")
        with pytest.raises(Unauthenticated):
            await auth_service.login("pat@partner.com", "wrong-pw")

    async def test_session_carries_resolved_role(self, auth_service, user_factory):
        await user_factory("ops@vendor.com", password="pw")

        session = await auth_service.login("ops@vendor.com", "pw")

        assert session.user.role == "admin"
        assert verify_token(session.access_token)["role"] == "admin"

    async def test_external_login_creates_active_user(self, auth_service, repos, store):
        identity = ExternalIdentity(
            subject="google-123",
            email="Kim@NewCo.io",
            name="Kim Park",
            given_name="Kim",
            family_name="Park",
        )

        session = await auth_service.external_login(identity)

        user = await repos.users.get(session.user.id)
        assert user.email == "kim@newco.io"
        assert user.status == "active"
        assert user.password_hash == ""
        assert user.email_verified == "true"
        assert user.external_subject == "google-123"
        partner = await repos.partners.get(user.partner_id)
        assert partner.company_name == "newco.io"
        assert partner.territory == "North America"

        again = await auth_service.external_login(identity)
        assert again.user.id == user.id
        assert len(store.dump("Users")) == 2
        assert len(store.dump("Partners")) == 2

    async def test_external_user_cannot_password_login(self, auth_service):
        await auth_service.external_login(
            ExternalIdentity(subject="g-1", email="kim@newco.io", name="Kim")
        )
        with pytest.raises(Unauthenticated):
            await auth_service.login("kim@newco.io", "")
