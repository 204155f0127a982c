"""
export_api.py — promptforge Export API

Single endpoint:
- GET /export/{project_id}

Returns: binary zip (promptforge_<id>_<ts>.zip)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from supabase import Client

from ..auth import User, get_current_user
from ..db import get_db
from ..deps import ensure_project_owner
from ..exporter import ProjectExporter

router = APIRouter(prefix="/export", tags=["export"])


@router.get("/{project_id}")
def export_project(project_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    ensure_project_owner(db, project_id, user)

    pkg = ProjectExporter(db).package(str(project_id))
    if not pkg["success"]:
        raise HTTPException(status_code=400, detail=pkg["error"])

    return Response(
        content=pkg["bytes"],
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{pkg["filename"]}"'},
    )
