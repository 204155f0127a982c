"""
files_api.py — promptforge File management API

Tables:
- code_files: id (uuid), project_id (uuid), file_path (text), content (text),
              updated_at timestamp, created_at timestamp
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from supabase import Client

from ..agent.generator import CodeFileStore, FileStoreError
from ..agent.operations import check_path
from ..auth import User, get_current_user
from ..db import get_db
from ..deps import ensure_project_owner

router = APIRouter(prefix="/projects/{project_id}/files", tags=["files"])


class FileInfo(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    file_path: str
    updated_at: Optional[str] = None


class FileDetail(FileInfo):
    content: str


class FileWrite(BaseModel):
    file_path: str
    content: str


class FileRename(BaseModel):
    file_path: str
    new_path: str


def _check(path: str) -> None:
    problem = check_path(path)
    if problem:
        raise HTTPException(status_code=400, detail=problem)


@router.get("", response_model=List[FileInfo])
def list_files(project_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    ensure_project_owner(db, project_id, user)
    return CodeFileStore(db).list(str(project_id))


@router.get("/read", response_model=FileDetail)
def read_file(
    project_id: uuid.UUID,
    path: str,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_project_owner(db, project_id, user)
    row = CodeFileStore(db).read(str(project_id), path)
    if not row:
        raise HTTPException(status_code=404, detail="File not found")
    return row


@router.put("", response_model=FileDetail)
def write_file(
    project_id: uuid.UUID,
    body: FileWrite,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_project_owner(db, project_id, user)
    _check(body.file_path)
    return CodeFileStore(db).upsert(str(project_id), body.file_path, body.content)


@router.post("/rename", response_model=FileDetail)
def rename_file(
    project_id: uuid.UUID,
    body: FileRename,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_project_owner(db, project_id, user)
    _check(body.new_path)
    store = CodeFileStore(db)
    if not store.read(str(project_id), body.file_path):
        raise HTTPException(status_code=404, detail="File not found")
    try:
        return store.rename(str(project_id), body.file_path, body.new_path)
    except FileStoreError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    project_id: uuid.UUID,
    path: str,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_project_owner(db, project_id, user)
    if not CodeFileStore(db).delete(str(project_id), path):
        raise HTTPException(status_code=404, detail="File not found")
