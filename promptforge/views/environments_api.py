"""
environments_api.py — promptforge per-project environments

- environments: id, project_id, name, variables (json), created_at, updated_at
"""

from __future__ import annotations

import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from supabase import Client

from ..auth import User, get_current_user
from ..db import first_row, get_db, utcnow
from ..deps import ensure_project_owner

router = APIRouter(tags=["environments"])


class EnvironmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    variables: Dict[str, str] = Field(default_factory=dict)


class EnvironmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    variables: Optional[Dict[str, str]] = None


class Environment(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    variables: Dict[str, str] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def _get_owned(db: Client, environment_id: uuid.UUID, user: User):
    env = first_row(db.table("environments").select("*").eq("id", str(environment_id)).limit(1).execute())
    if not env:
        raise HTTPException(status_code=404, detail="Environment not found")
    ensure_project_owner(db, env["project_id"], user)
    return env


def _name_taken(db: Client, project_id: str, name: str) -> bool:
    resp = (
        db.table("environments")
        .select("id")
        .eq("project_id", project_id)
        .eq("name", name)
        .limit(1)
        .execute()
    )
    return bool(resp.data)


@router.get("/projects/{project_id}/environments", response_model=List[Environment])
def list_environments(project_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    ensure_project_owner(db, project_id, user)
    resp = db.table("environments").select("*").eq("project_id", str(project_id)).order("name").execute()
    return resp.data or []


@router.post(
    "/projects/{project_id}/environments",
    response_model=Environment,
    status_code=status.HTTP_201_CREATED,
)
def create_environment(
    project_id: uuid.UUID,
    body: EnvironmentCreate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_project_owner(db, project_id, user)
    if _name_taken(db, str(project_id), body.name):
        raise HTTPException(status_code=409, detail="Environment already exists")
    return first_row(
        db.table("environments")
        .insert({"project_id": str(project_id), "name": body.name, "variables": body.variables})
        .execute()
    )


@router.patch("/environments/{environment_id}", response_model=Environment)
def update_environment(
    environment_id: uuid.UUID,
    body: EnvironmentUpdate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    env = _get_owned(db, environment_id, user)
    updates = body.model_dump(exclude_none=True)
    if not updates:
        return env
    if "name" in updates and updates["name"] != env["name"] and _name_taken(db, env["project_id"], updates["name"]):
        raise HTTPException(status_code=409, detail="Environment already exists")
    updates["updated_at"] = utcnow()
    return first_row(db.table("environments").update(updates).eq("id", str(environment_id)).execute())


@router.delete("/environments/{environment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_environment(
    environment_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    _get_owned(db, environment_id, user)
    db.table("environments").delete().eq("id", str(environment_id)).execute()
