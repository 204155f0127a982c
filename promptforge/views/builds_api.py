"""
builds_api.py — promptforge build jobs

- GET  /projects/{id}/builds     newest first, plus an `is_building` flag
- POST /projects/{id}/builds     queue a job and run the pipeline in the background
- GET  /builds/{build_job_id}
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel
from supabase import Client

from ..auth import User, get_current_user
from ..builder import BuildPipeline
from ..db import first_row, get_db
from ..deps import ensure_project_owner
from ..models import BuildStatus
from ..settings import Settings, get_settings

router = APIRouter(tags=["builds"])


class BuildTrigger(BaseModel):
    build_command: str = "npm run build"


class BuildJob(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    build_command: str
    status: BuildStatus
    build_log: Optional[str] = None
    duration: Optional[int] = None
    artifact_url: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None


class BuildList(BaseModel):
    builds: List[BuildJob]
    latest: Optional[BuildJob] = None
    is_building: bool = False


@router.get("/projects/{project_id}/builds", response_model=BuildList)
def list_builds(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    ensure_project_owner(db, project_id, user)
    builds = BuildPipeline(db, settings).list_jobs(str(project_id))
    latest = builds[0] if builds else None
    is_building = bool(latest) and latest["status"] in (BuildStatus.QUEUED.value, BuildStatus.BUILDING.value)
    return {"builds": builds, "latest": latest, "is_building": is_building}


@router.post("/projects/{project_id}/builds", response_model=BuildJob, status_code=status.HTTP_202_ACCEPTED)
def trigger_build(
    project_id: uuid.UUID,
    body: BuildTrigger,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    ensure_project_owner(db, project_id, user)
    pipeline = BuildPipeline(db, settings)
    job = pipeline.create_job(str(project_id), body.build_command)
    background_tasks.add_task(pipeline.run, job["id"], str(project_id))
    return job


@router.get("/builds/{build_job_id}", response_model=BuildJob)
def get_build(build_job_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    job = first_row(db.table("build_jobs").select("*").eq("id", str(build_job_id)).limit(1).execute())
    if not job:
        raise HTTPException(status_code=404, detail="Build not found")
    ensure_project_owner(db, job["project_id"], user)
    return job
