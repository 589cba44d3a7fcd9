"""Pydantic schemas for XP and levels."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class XPAccountResponse(BaseModel):
    """Schema for XP account responses."""

    user_id: str
    total_xp: int = Field(..., ge=0)
    current_level: int = Field(..., ge=1)
    xp_to_next_level: int = Field(..., ge=0)

    model_config = {"from_attributes": True}


class XPGrantResult(BaseModel):
    """Result of granting XP to a user."""

    account: XPAccountResponse
    amount: int
    reason: Optional[str] = None
    leveled_up: bool = False
    previous_level: int
    new_level: int
    duplicate: bool = False  # Idempotency key already applied; nothing changed


class LevelUp(BaseModel):
    """A level-up the caller may want to announce."""

    previous_level: int
    new_level: int
    total_xp: int
    reason: Optional[str] = None


class XPLedgerEntryResponse(BaseModel):
    """Schema for XP ledger entries."""

    id: str
    user_id: str
    amount: int
    reason: Optional[str]
    idempotency_key: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}
