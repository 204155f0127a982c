"""
admin_api.py — promptforge AI configuration

- ai_models       model catalog + per-token pricing used by billing
- system_prompts  versioned prompt overrides, one active per category
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from supabase import Client

from ..auth import User, get_current_user
from ..db import first_row, get_db, utcnow
from ..models import AIProvider, PromptCategory

router = APIRouter(prefix="/admin", tags=["admin"])


# -------------------------------------------------------------------
# Schemas
# -------------------------------------------------------------------


class AIModelCreate(BaseModel):
    name: str = Field(..., min_length=1)
    provider: AIProvider
    model_name: str = Field(..., min_length=1)
    api_endpoint: Optional[str] = None
    max_tokens: int = Field(4096, gt=0)
    cost_per_input_token: float = Field(0.0, ge=0)
    cost_per_output_token: float = Field(0.0, ge=0)
    is_active: bool = True
    configuration: Dict[str, Any] = Field(default_factory=dict)


class AIModelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    api_endpoint: Optional[str] = None
    max_tokens: Optional[int] = Field(None, gt=0)
    cost_per_input_token: Optional[float] = Field(None, ge=0)
    cost_per_output_token: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None
    configuration: Optional[Dict[str, Any]] = None


class AIModel(AIModelCreate):
    id: uuid.UUID
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SystemPromptCreate(BaseModel):
    name: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: PromptCategory
    is_active: bool = False


class SystemPromptUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[PromptCategory] = None


class SystemPrompt(BaseModel):
    id: uuid.UUID
    name: str
    content: str
    category: PromptCategory
    is_active: bool = False
    version: int = 1
    created_by: Optional[uuid.UUID] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# -------------------------------------------------------------------
# AI models
# -------------------------------------------------------------------


def _get_model(db: Client, model_id: uuid.UUID) -> Dict[str, Any]:
    row = first_row(db.table("ai_models").select("*").eq("id", str(model_id)).limit(1).execute())
    if not row:
        raise HTTPException(status_code=404, detail="Model not found")
    return row


@router.get("/ai-models", response_model=List[AIModel])
def list_models(
    include_inactive: bool = False,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    query = db.table("ai_models").select("*")
    if not include_inactive:
        query = query.eq("is_active", True)
    return query.order("name").execute().data or []


@router.post("/ai-models", response_model=AIModel, status_code=status.HTTP_201_CREATED)
def create_model(body: AIModelCreate, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    existing = db.table("ai_models").select("id").eq("model_name", body.model_name).limit(1).execute()
    if existing.data:
        raise HTTPException(status_code=409, detail="Model already registered")
    return first_row(db.table("ai_models").insert(body.model_dump(mode="json")).execute())


@router.patch("/ai-models/{model_id}", response_model=AIModel)
def update_model(
    model_id: uuid.UUID,
    body: AIModelUpdate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    row = _get_model(db, model_id)
    updates = body.model_dump(exclude_none=True, mode="json")
    if not updates:
        return row
    updates["updated_at"] = utcnow()
    return first_row(db.table("ai_models").update(updates).eq("id", str(model_id)).execute())


# -------------------------------------------------------------------
# System prompts
# -------------------------------------------------------------------


def _get_prompt(db: Client, prompt_id: uuid.UUID) -> Dict[str, Any]:
    row = first_row(db.table("system_prompts").select("*").eq("id", str(prompt_id)).limit(1).execute())
    if not row:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return row


def _deactivate_category(db: Client, category: str) -> None:
    db.table("system_prompts").update({"is_active": False, "updated_at": utcnow()}).eq(
        "category", category
    ).eq("is_active", True).execute()


@router.get("/system-prompts", response_model=List[SystemPrompt])
def list_prompts(
    category: Optional[PromptCategory] = None,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    query = db.table("system_prompts").select("*")
    if category:
        query = query.eq("category", category.value)
    return query.order("updated_at", desc=True).execute().data or []


@router.post("/system-prompts", response_model=SystemPrompt, status_code=status.HTTP_201_CREATED)
def create_prompt(body: SystemPromptCreate, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    if body.is_active:
        _deactivate_category(db, body.category.value)
    row = body.model_dump(mode="json")
    row.update({"version": 1, "created_by": str(user.id)})
    return first_row(db.table("system_prompts").insert(row).execute())


@router.patch("/system-prompts/{prompt_id}", response_model=SystemPrompt)
def update_prompt(
    prompt_id: uuid.UUID,
    body: SystemPromptUpdate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    row = _get_prompt(db, prompt_id)
    updates = body.model_dump(exclude_none=True, mode="json")
    if not updates:
        return row
    if "content" in updates and updates["content"] != row["content"]:
        updates["version"] = int(row.get("version") or 1) + 1
    updates["updated_at"] = utcnow()
    return first_row(db.table("system_prompts").update(updates).eq("id", str(prompt_id)).execute())


@router.post("/system-prompts/{prompt_id}/activate", response_model=SystemPrompt)
def activate_prompt(prompt_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    row = _get_prompt(db, prompt_id)
    _deactivate_category(db, row["category"])
    return first_row(
        db.table("system_prompts")
        .update({"is_active": True, "updated_at": utcnow()})
        .eq("id", str(prompt_id))
        .execute()
    )


@router.delete("/system-prompts/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prompt(prompt_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    _get_prompt(db, prompt_id)
    db.table("system_prompts").delete().eq("id", str(prompt_id)).execute()
