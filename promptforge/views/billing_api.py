"""
billing_api.py — promptforge plan + usage for the current user
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from supabase import Client

from ..agent.usage import UsageTracker
from ..auth import User, get_current_user
from ..db import first_row, get_db, utcnow
from ..models import BillingStatus
from ..settings import Settings, get_settings

router = APIRouter(prefix="/billing", tags=["billing"])


class BillingUpdate(BaseModel):
    """Self-service fields only; usage, limit and status move through UsageTracker."""

    model_config = ConfigDict(extra="forbid")

    plan_name: Optional[str] = Field(None, min_length=1)
    billing_cycle_start: Optional[str] = None
    billing_cycle_end: Optional[str] = None


class BillingAccount(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    plan_name: str
    status: BillingStatus
    monthly_limit: float
    current_usage: float = 0.0
    billing_cycle_start: Optional[str] = None
    billing_cycle_end: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@router.get("", response_model=BillingAccount)
def get_billing(
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    row = UsageTracker(db, settings.DEFAULT_MONTHLY_LIMIT).account(str(user.id))
    if not row:
        raise HTTPException(status_code=404, detail="Billing account not found")
    return row


@router.post("/init", response_model=BillingAccount, status_code=status.HTTP_201_CREATED)
def init_billing(
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return UsageTracker(db, settings.DEFAULT_MONTHLY_LIMIT).ensure_account(str(user.id))


@router.patch("", response_model=BillingAccount)
def update_billing(
    body: BillingUpdate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    row = UsageTracker(db, settings.DEFAULT_MONTHLY_LIMIT).account(str(user.id))
    if not row:
        raise HTTPException(status_code=404, detail="Billing account not found")
    updates = body.model_dump(exclude_none=True, mode="json")
    if not updates:
        return row
    updates["updated_at"] = utcnow()
    return first_row(db.table("user_billing").update(updates).eq("user_id", str(user.id)).execute())
