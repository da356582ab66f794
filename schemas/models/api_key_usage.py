"""
API key usage document model.

Maps to the `api_key_usage` MongoDB collection — one record per request made
with a valid API key, written off the request path by ApiKeyUsageLogger.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel, PyObjectId


class ApiKeyUsageDoc(MongoBaseModel):
    """Document model for the `api_key_usage` collection."""

    api_key_id: PyObjectId
    endpoint: str
    method: str
    status_code: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None
