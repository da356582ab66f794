"""
Account document model.

Maps to the `accounts` MongoDB collection. An account is one political
office (gabinete); every user and API key belongs to exactly one account.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel


class AccountDoc(MongoBaseModel):
    """Document model for the `accounts` collection."""

    name: str
    created_at: Optional[datetime] = None
