"""
API-key authenticated surface (``Authorization: Bearer pk_...``).

Every route resolves the key and then applies the per-key rate limit.
Usage is recorded by ApiKeyUsageMiddleware once the response is sent.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from dependencies import api_rate_limit, get_api_key_identity, get_api_key_service
from schemas.dto.responses.api_key import ApiKeyIdentityResponse, ApiKeyUsageResponse
from schemas.dto.responses.common import error_responses
from services.api_key_service import ApiKeyIdentity, ApiKeyService

router = APIRouter(
    prefix="/api/v1",
    tags=["v1"],
    responses=error_responses(401, 429, 500),
    dependencies=[Depends(get_api_key_identity), Depends(api_rate_limit())],
)


@router.get("/key", response_model=ApiKeyIdentityResponse)
async def whoami(
    identity: ApiKeyIdentity = Depends(get_api_key_identity),
) -> ApiKeyIdentityResponse:
    return ApiKeyIdentityResponse(key_id=identity.key_id, account_id=identity.account_id)


@router.get("/key/usage", response_model=list[ApiKeyUsageResponse])
async def key_usage(
    limit: int = Query(default=50, ge=1, le=200),
    identity: ApiKeyIdentity = Depends(get_api_key_identity),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
) -> list[ApiKeyUsageResponse]:
    records = await api_key_service.recent_usage(identity.key_id, limit=limit)
    return [ApiKeyUsageResponse.from_doc(r) for r in records]
