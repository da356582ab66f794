"""
API key document model.

Maps to the `api_keys` MongoDB collection.

key_hash stores SHA-256 of the full ``pk_...`` key — the plaintext key is shown
once at creation and never stored. key_prefix (``pk_`` + 8 chars + ``...``) is
stored for display purposes. Revoking a key flips is_active; the record is
kept so its usage trail stays attributable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel, PyObjectId
from shared.datetime_utils import ensure_utc


class ApiKeyDoc(MongoBaseModel):
    """Document model for the `api_keys` collection."""

    account_id: PyObjectId
    name: str
    description: Optional[str] = None
    key_prefix: str
    key_hash: str
    last_used_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        expires_at = ensure_utc(self.expires_at)
        return expires_at is not None and expires_at <= now
