"""
API key administration for account admins.

GET    /api/api-keys           — active keys, newest first (prefix only)
POST   /api/api-keys           — create; the full key is returned once (201)
DELETE /api/api-keys/{key_id}  — revoke
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_api_key_service, require_role
from schemas.dto.requests.api_key import CreateApiKeyRequest
from schemas.dto.responses.api_key import ApiKeyCreatedResponse, ApiKeyResponse
from schemas.dto.responses.common import MessageResponse, error_responses
from services.api_key_service import ApiKeyService
from services.auth_service import CurrentUser

router = APIRouter(
    prefix="/api/api-keys",
    tags=["api-keys"],
    responses=error_responses(400, 401, 403, 404),
)

require_admin = require_role("admin")


@router.get("", response_model=list[ApiKeyResponse])
async def list_api_keys(
    caller: CurrentUser = Depends(require_admin),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
) -> list[ApiKeyResponse]:
    keys = await api_key_service.list_keys(caller.account_id)
    return [ApiKeyResponse.from_doc(k) for k in keys]


@router.post("", response_model=ApiKeyCreatedResponse, status_code=201)
async def create_api_key(
    body: CreateApiKeyRequest,
    caller: CurrentUser = Depends(require_admin),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyCreatedResponse:
    created = await api_key_service.create_key(
        caller.account_id,
        name=body.name,
        description=body.description,
        expires_at=body.expires_at,
    )
    return ApiKeyCreatedResponse.from_doc(created.key, key=created.plaintext)


@router.delete("/{key_id}", response_model=MessageResponse)
async def revoke_api_key(
    key_id: str,
    caller: CurrentUser = Depends(require_admin),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
) -> MessageResponse:
    await api_key_service.revoke_key(key_id, caller.account_id)
    return MessageResponse(success=True, message="API key revoked")
