"""
projects_api.py — promptforge Projects CRUD

Tables expected in Supabase:
- projects: id (uuid), user_id (uuid), name (text), description (text),
            status (project_status), repository_url, deployment_url,
            deleted_at, deleted_by, created_at, updated_at

Deleting a project moves it to the trash (soft delete); it can be restored.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from supabase import Client

from ..auth import User, get_current_user
from ..db import first_row, get_db, utcnow
from ..deps import ensure_project_owner
from ..models import ProjectStatus

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    repository_url: Optional[str] = None


class Project(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    repository_url: Optional[str] = None
    deployment_url: Optional[str] = None
    deleted_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@router.get("", response_model=List[Project])
def list_projects(
    include_deleted: bool = False,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    query = db.table("projects").select("*").eq("user_id", str(user.id))
    if not include_deleted:
        query = query.is_("deleted_at", "null")
    resp = query.order("updated_at", desc=True).execute()
    return resp.data or []


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
def create_project(body: ProjectCreate, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    return first_row(
        db.table("projects")
        .insert(
            {
                "user_id": str(user.id),
                "name": body.name,
                "description": body.description,
                "status": ProjectStatus.ACTIVE.value,
            }
        )
        .execute()
    )


@router.get("/{project_id}", response_model=Project)
def get_project(project_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    return ensure_project_owner(db, project_id, user)


@router.patch("/{project_id}", response_model=Project)
def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    project = ensure_project_owner(db, project_id, user)

    update_data = body.model_dump(exclude_none=True, mode="json")
    if not update_data:
        return project

    update_data["updated_at"] = utcnow()
    return first_row(db.table("projects").update(update_data).eq("id", str(project_id)).execute())


@router.delete("/{project_id}", response_model=Project)
def delete_project(project_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    ensure_project_owner(db, project_id, user)
    return first_row(
        db.table("projects")
        .update({"deleted_at": utcnow(), "deleted_by": str(user.id)})
        .eq("id", str(project_id))
        .execute()
    )


@router.post("/{project_id}/restore", response_model=Project)
def restore_project(project_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    ensure_project_owner(db, project_id, user, allow_deleted=True)
    return first_row(
        db.table("projects")
        .update({"deleted_at": None, "deleted_by": None})
        .eq("id", str(project_id))
        .execute()
    )
