"""Account Routes — register, login and change-password.

Invariants:
    - /register and /login are public; /change-password requires a bearer token
    - Body validated by Pydantic before any store access
    - Success bodies: {message, token} for register/login, {message} for change-password

Design Decisions:
    - Paths at the root (no /api/v1 prefix): existing clients call /register, /login directly
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_account_service, require_principal
from app.core.domain_types import Principal
from app.schemas.account import (
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    TokenResponse,
)
from app.services.accounts import AccountService

router = APIRouter(tags=["accounts"])


@router.post("/register", response_model=TokenResponse)
async def register(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
):
    token = await accounts.register(body.username, body.password)
    return TokenResponse(message="User registered successfully", token=token)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
):
    token = await accounts.login(body.username, body.password)
    return TokenResponse(message="Login successful", token=token)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(require_principal),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.change_password(
        principal, body.username, body.old_password, body.new_password,
    )
    return MessageResponse(message="Password updated successfully")
