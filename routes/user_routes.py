"""
User administration within the caller's account.

Every route requires a session, the ``admin`` role and the ``users``
permission, checked in that order.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_auth_service, get_current_user, require_permission, require_role
from schemas.dto.requests.auth import CreateUserRequest, UpdateUserRequest
from schemas.dto.responses.auth import UserResponse
from schemas.dto.responses.common import MessageResponse, error_responses
from services.auth_service import AuthService, CurrentUser

router = APIRouter(
    prefix="/api/users",
    tags=["users"],
    responses=error_responses(400, 401, 403, 404),
    dependencies=[Depends(require_role("admin")), Depends(require_permission("users"))],
)


@router.get("", response_model=list[UserResponse])
async def list_users(
    caller: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> list[UserResponse]:
    users = await auth_service.list_users(caller.account_id)
    return [UserResponse.from_doc(u) for u in users]


@router.post("/create", response_model=UserResponse, status_code=201)
async def create_user(
    body: CreateUserRequest,
    caller: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    user = await auth_service.create_user(
        caller.account_id,
        email=body.email,
        password=body.password,
        name=body.name,
        role=body.role,
        permissions=body.permissions,
    )
    return UserResponse.from_doc(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    caller: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    user = await auth_service.update_user(user_id, caller, body.changes())
    return UserResponse.from_doc(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    caller: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.delete_user(user_id, caller)
    return MessageResponse(success=True, message="Usuário excluído com sucesso")
