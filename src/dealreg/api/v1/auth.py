"""Authentication API endpoints.

Provides partner self-registration, password login and current user info.
Only /me requires a valid bearer token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from src.dealreg.api.deps import get_auth_service, get_current_principal
from src.dealreg.auth.schemas import Principal, SessionResult, UserSummary
from src.dealreg.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str = ""
    password: str = ""
    first_name: str = ""
    last_name: str = ""
    partner_company: str = ""
    territory: str = ""


class RegisterResponse(BaseModel):
    message: str
    user: UserSummary


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class MeResponse(BaseModel):
    user_id: str
    email: str
    role: str
    partner_id: str = ""
    first_name: str = ""
    last_name: str = ""
    is_admin: bool = False


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """Register a partner user. The account stays pending until activated."""
    user = await service.register_user(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        partner_company=body.partner_company,
        territory=body.territory,
    )
    return RegisterResponse(
        message="Registration successful. Your account is pending approval.",
        user=user,
    )


@router.post("/login", response_model=SessionResult)
async def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> SessionResult:
    return await service.login(body.email, body.password)


@router.get("/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_current_principal)) -> MeResponse:
    return MeResponse(
        user_id=principal.user_id,
        email=principal.email,
        role=principal.role.value,
        partner_id=principal.partner_id,
        first_name=principal.first_name,
        last_name=principal.last_name,
        is_admin=principal.is_admin,
    )
