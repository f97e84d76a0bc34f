"""Shared fixtures for the deal registration test suite.

Provides:
- An in-memory tabular store bootstrapped with every table header
- Repositories, lifecycle, admin registry and auth services bound to it
- Ready-made admin and partner principals
- A submission factory with every required field filled in
"""

from __future__ import annotations

import os

# Settings are cached on first use; pin test values before anything loads them
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ADMIN_ALLOWLIST", "ops@vendor.com")

import pytest
import pytest_asyncio

from src.dealreg.auth.admin_registry import AdminRegistry
from src.dealreg.auth.gateway import AuthGateway
from src.dealreg.auth.roles import RoleResolver, build_role_resolver
from src.dealreg.auth.schemas import Principal
from src.dealreg.auth.service import AuthService
from src.dealreg.config import get_settings
from src.dealreg.core.security import hash_password
from src.dealreg.deals.duplicates import DuplicateDetector
from src.dealreg.deals.lifecycle import DealLifecycle
from src.dealreg.deals.schemas import DealSubmission
from src.dealreg.records.repository import Repositories, ensure_schema
from src.dealreg.records.schemas import UserRecord, UserRole, UserStatus
from src.dealreg.store.memory import InMemoryTabularStore

get_settings.cache_clear()

STATIC_ADMIN_EMAIL = "ops@vendor.com"


# ── Store and Services ───────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def store() -> InMemoryTabularStore:
    """Empty in-memory store with every table header written."""
    memory_store = InMemoryTabularStore()
    await ensure_schema(memory_store)
    return memory_store


@pytest.fixture
def repos(store) -> Repositories:
    return Repositories.for_store(store)


@pytest.fixture
def registry(repos) -> AdminRegistry:
    return AdminRegistry(repos.admins)


@pytest.fixture
def role_resolver(registry) -> RoleResolver:
    return build_role_resolver([STATIC_ADMIN_EMAIL], registry)


@pytest.fixture
def lifecycle(repos) -> DealLifecycle:
    return DealLifecycle(repos, duplicate_detector=DuplicateDetector(repos.deals))


@pytest.fixture
def gateway(repos, role_resolver) -> AuthGateway:
    return AuthGateway(repos.users, role_resolver)


@pytest.fixture
def auth_service(repos, role_resolver) -> AuthService:
    return AuthService(repos, role_resolver)


# ── Principals ───────────────────────────────────────────────────────────────


@pytest.fixture
def admin() -> Principal:
    return Principal(
        user_id="admin-1",
        email=STATIC_ADMIN_EMAIL,
        role=UserRole.ADMIN,
        first_name="Olive",
        last_name="Ops",
    )


@pytest.fixture
def partner() -> Principal:
    return Principal(
        user_id="user-1",
        email="sam@reseller.io",
        role=UserRole.PARTNER_USER,
        partner_id="partner-1",
        first_name="Sam",
        last_name="Seller",
    )


# ── Factories ────────────────────────────────────────────────────────────────


def make_submission(**overrides) -> DealSubmission:
    """A valid submission; keyword arguments override individual fields."""
    data = {
        "company_name": "Acme Corp",
        "domain": "acme.com",
        "partner_company": "Reseller Inc",
        "submitter_name": "Sam Seller",
        "submitter_email": "sam@reseller.io",
        "territory": "EMEA",
        "customer_legal_name": "Acme Corporation Ltd",
        "customer_industry": "Manufacturing",
        "customer_location": "Berlin",
        "deal_stage": "qualified",
        "expected_close_date": "2025-12-31",
        "deal_value": "50000",
        "contract_type": "annual",
        "primary_product": "Platform",
        "agreed_to_terms": True,
    }
    data.update(overrides)
    return DealSubmission(**data)


async def create_user(
    repos: Repositories,
    email: str,
    password: str = "s3cret-pass",
    role: UserRole = UserRole.PARTNER_USER,
    status: UserStatus = UserStatus.ACTIVE,
    partner_id: str = "partner-1",
) -> UserRecord:
    """Persist a user directly, bypassing registration."""
    return await repos.users.create(
        UserRecord(
            partner_id=partner_id,
            email=email,
            password_hash=hash_password(password),
            first_name="Test",
            last_name="User",
            role=role.value,
            status=status.value,
        )
    )


@pytest.fixture
def submission_factory():
    return make_submission


@pytest.fixture
def user_factory(repos):
    async def _create(email: str, **kwargs) -> UserRecord:
        return await create_user(repos, email, **kwargs)

    return _create
