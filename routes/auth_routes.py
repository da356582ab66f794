"""
Authentication endpoints.

POST /api/auth/register — new account whose first user is its admin
POST /api/auth/login    — email/password → session token
GET  /api/auth/me       — the stored record of the verified caller
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_auth_service, get_current_user
from schemas.dto.requests.auth import LoginRequest, RegisterRequest
from schemas.dto.responses.auth import AuthResponse, UserResponse
from schemas.dto.responses.common import error_responses
from services.auth_service import AuthService, CurrentUser

router = APIRouter(
    prefix="/api/auth", tags=["auth"], responses=error_responses(400, 401, 403)
)


@router.post("/register", response_model=AuthResponse)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    result = await auth_service.register(
        email=body.email,
        password=body.password,
        name=body.name,
        phone=body.phone,
        permissions=body.permissions,
    )
    return AuthResponse(token=result.token, user=UserResponse.from_doc(result.user))


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    result = await auth_service.login(email=body.email, password=body.password)
    return AuthResponse(token=result.token, user=UserResponse.from_doc(result.user))


@router.get("/me", response_model=UserResponse)
async def me(
    user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    return UserResponse.from_doc(await auth_service.get_user(user.id))
