"""
deployments_api.py — promptforge deployments

- GET  /projects/{id}/deployments
- POST /projects/{id}/deployments   create a pending deployment, run it in the background
- GET  /deployments/{deployment_id}
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, Field
from supabase import Client

from ..auth import User, get_current_user
from ..db import first_row, get_db
from ..deployer import DeploymentPipeline
from ..deps import ensure_project_owner
from ..models import DeploymentStatus
from ..settings import Settings, get_settings

router = APIRouter(tags=["deployments"])


class DeploymentTrigger(BaseModel):
    environment: str = Field("production", min_length=1, max_length=50, pattern=r"^[a-z0-9-]+$")
    build_command: str = "npm run build"


class Deployment(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    environment: str
    build_command: Optional[str] = None
    status: DeploymentStatus
    deployment_log: Optional[str] = None
    duration: Optional[int] = None
    url: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None


@router.get("/projects/{project_id}/deployments", response_model=List[Deployment])
def list_deployments(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    ensure_project_owner(db, project_id, user)
    return DeploymentPipeline(db, settings).list(str(project_id))


@router.post(
    "/projects/{project_id}/deployments",
    response_model=Deployment,
    status_code=status.HTTP_202_ACCEPTED,
)
def trigger_deployment(
    project_id: uuid.UUID,
    body: DeploymentTrigger,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    ensure_project_owner(db, project_id, user)
    pipeline = DeploymentPipeline(db, settings)
    deployment = pipeline.create(str(project_id), body.environment, body.build_command)
    background_tasks.add_task(pipeline.run, deployment["id"], str(project_id))
    return deployment


@router.get("/deployments/{deployment_id}", response_model=Deployment)
def get_deployment(deployment_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    deployment = first_row(db.table("deployments").select("*").eq("id", str(deployment_id)).limit(1).execute())
    if not deployment:
        raise HTTPException(status_code=404, detail="Deployment not found")
    ensure_project_owner(db, deployment["project_id"], user)
    return deployment
