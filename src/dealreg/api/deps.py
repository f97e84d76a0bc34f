"""FastAPI dependency injection for core services and authentication.

Services are built once in the application lifespan and stored on
app.state; these dependencies fetch them per request and resolve the
caller from the bearer token.
"""

from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, Request, status

from src.dealreg.auth.admin_registry import AdminRegistry
from src.dealreg.auth.gateway import AuthGateway
from src.dealreg.auth.schemas import Principal
from src.dealreg.auth.service import AuthService
from src.dealreg.deals.lifecycle import DealLifecycle


def _from_state(request: Request, name: str) -> Any:
    """Retrieve a service from app.state, 503 if not available."""
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service not initialized: {name}",
        )
    return service


def get_lifecycle(request: Request) -> DealLifecycle:
    return _from_state(request, "deal_lifecycle")


def get_admin_registry(request: Request) -> AdminRegistry:
    return _from_state(request, "admin_registry")


def get_auth_service(request: Request) -> AuthService:
    return _from_state(request, "auth_service")


def get_auth_gateway(request: Request) -> AuthGateway:
    return _from_state(request, "auth_gateway")


async def get_current_principal(
    request: Request,
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> Principal:
    """Resolve the caller from the `Authorization: Bearer <token>` header.

    Raises:
        Unauthenticated: No bearer token, or the gateway rejects it.
    """
    token = None
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header[7:]
    return await gateway.authenticate(token)


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Require the caller to hold the admin role."""
    return AuthGateway.require_admin(principal)
