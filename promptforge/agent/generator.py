"""
generator.py — promptforge Build Operator

Applies validated file operations to the virtual file system:
- create / update  -> upsert into `code_files`
- delete           -> delete row
- rename           -> move row to a new path

Table:
- code_files: id (uuid), project_id (uuid), file_path (text), content (text),
              created_at, updated_at; unique (project_id, file_path)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from ..db import first_row, utcnow
from ..models import FileOperation, OperationType

logger = logging.getLogger(__name__)


class FileStoreError(RuntimeError):
    pass


class CodeFileStore:

    table = "code_files"

    def __init__(self, db: Client):
        self.db = db

    def list(self, project_id: str) -> List[Dict[str, Any]]:
        resp = (
            self.db.table(self.table)
            .select("id,project_id,file_path,content,created_at,updated_at")
            .eq("project_id", str(project_id))
            .order("file_path")
            .execute()
        )
        return resp.data or []

    def read(self, project_id: str, path: str) -> Optional[Dict[str, Any]]:
        resp = (
            self.db.table(self.table)
            .select("*")
            .eq("project_id", str(project_id))
            .eq("file_path", path)
            .limit(1)
            .execute()
        )
        return first_row(resp)

    def upsert(self, project_id: str, path: str, content: str) -> Dict[str, Any]:
        resp = (
            self.db.table(self.table)
            .upsert(
                {
                    "project_id": str(project_id),
                    "file_path": path,
                    "content": content,
                    "updated_at": utcnow(),
                },
                on_conflict="project_id,file_path",
            )
            .execute()
        )
        return first_row(resp) or {}

    def insert(self, project_id: str, path: str, content: str) -> Dict[str, Any]:
        """Plain insert; fails on an existing path (unique constraint)."""
        resp = (
            self.db.table(self.table)
            .insert({"project_id": str(project_id), "file_path": path, "content": content})
            .execute()
        )
        return first_row(resp) or {}

    def delete(self, project_id: str, path: str) -> bool:
        resp = (
            self.db.table(self.table)
            .delete()
            .eq("project_id", str(project_id))
            .eq("file_path", path)
            .execute()
        )
        return bool(resp.data)

    def rename(self, project_id: str, path: str, new_path: str) -> Dict[str, Any]:
        if self.read(project_id, new_path):
            raise FileStoreError(f"Cannot rename {path}: {new_path} already exists")

        resp = (
            self.db.table(self.table)
            .update({"file_path": new_path, "updated_at": utcnow()})
            .eq("project_id", str(project_id))
            .eq("file_path", path)
            .execute()
        )
        row = first_row(resp)
        if not row:
            raise FileStoreError(f"Cannot rename missing file: {path}")
        return row

    def tree(self, project_id: str) -> Dict[str, str]:
        return {row["file_path"]: (row.get("content") or "") for row in self.list(project_id)}

    def context(self, project_id: str, limit: int) -> List[Dict[str, str]]:
        """File list for prompts, content cut to `limit` characters."""
        return [
            {"path": path, "content": content[:limit]}
            for path, content in self.tree(project_id).items()
        ]


class Generator:
    """Applies one operation at a time and reports what happened."""

    def __init__(self, store: CodeFileStore):
        self.store = store

    def apply(self, project_id: str, op: FileOperation) -> str:
        if op.type in (OperationType.CREATE, OperationType.UPDATE):
            self.store.upsert(project_id, op.file_path, op.content or "")
            verb = "Created" if op.type == OperationType.CREATE else "Updated"
            return f"{verb} file: {op.file_path}"

        if op.type == OperationType.DELETE:
            if not self.store.delete(project_id, op.file_path):
                logger.warning("delete of missing file %s in project %s", op.file_path, project_id)
            return f"Deleted file: {op.file_path}"

        if op.type == OperationType.RENAME:
            self.store.rename(project_id, op.file_path, op.new_path)
            return f"Renamed file: {op.file_path} -> {op.new_path}"

        raise ValueError(f"Unknown operation type: {op.type}")
