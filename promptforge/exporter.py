"""
exporter.py — promptforge Project Export

Assembles a downloadable .zip of a project:
- every code file at its path
- project.manifest.json (project, file count, latest deployment)
"""

from __future__ import annotations

import io
import json
import zipfile
from datetime import datetime, timezone
from typing import Any, Dict

from supabase import Client

from .agent.generator import CodeFileStore
from .db import first_row


class ProjectExporter:

    def __init__(self, db: Client):
        self.db = db
        self.store = CodeFileStore(db)

    def package(self, project_id: str) -> Dict[str, Any]:
        project_id = str(project_id)
        project = first_row(
            self.db.table("projects").select("id,name").eq("id", project_id).limit(1).execute()
        )
        if not project:
            return {"success": False, "error": "Project not found."}

        files = self.store.list(project_id)
        if not files:
            return {"success": False, "error": "Project has no files to export."}

        latest_deployment = first_row(
            self.db.table("deployments")
            .select("url,environment,completed_at")
            .eq("project_id", project_id)
            .eq("status", "success")
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        zip_name = f"promptforge_{project_id[:8]}_{ts}.zip"
        mem_zip = io.BytesIO()

        with zipfile.ZipFile(mem_zip, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
            for row in files:
                archive.writestr(row["file_path"], row.get("content") or "")

            manifest = {
                "project_id": project_id,
                "name": project.get("name"),
                "exported_at": ts,
                "file_count": len(files),
                "deployment": latest_deployment,
                "format": "promptforge-export-v1",
            }
            archive.writestr("project.manifest.json", json.dumps(manifest, indent=2))

        return {
            "success": True,
            "filename": zip_name,
            "bytes": mem_zip.getvalue(),
        }
