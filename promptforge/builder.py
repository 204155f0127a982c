"""
builder.py — promptforge build pipeline (simulated)

build_jobs: id, project_id, build_command, status, build_log, duration,
            artifact_url, started_at, completed_at, created_at, updated_at

queued -> building -> success | failed
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from supabase import Client

from .db import first_row, utcnow
from .models import BuildStatus
from .settings import Settings

logger = logging.getLogger(__name__)

BUILD_STEPS = [
    "Installing dependencies...",
    "Compiling TypeScript...",
    "Bundling assets...",
    "Optimizing bundle...",
    "Generating source maps...",
    "Build completed successfully!",
]


class BuildError(RuntimeError):
    pass


class BuildPipeline:

    def __init__(self, db: Client, settings: Settings):
        self.db = db
        self.settings = settings

    def create_job(self, project_id: str, build_command: str = "npm run build") -> Dict[str, Any]:
        resp = (
            self.db.table("build_jobs")
            .insert(
                {
                    "project_id": str(project_id),
                    "build_command": build_command,
                    "status": BuildStatus.QUEUED.value,
                    "build_log": None,
                    "artifact_url": None,
                    "duration": None,
                    "started_at": None,
                    "completed_at": None,
                }
            )
            .execute()
        )
        return first_row(resp)

    def list_jobs(self, project_id: str) -> List[Dict[str, Any]]:
        resp = (
            self.db.table("build_jobs")
            .select("*")
            .eq("project_id", str(project_id))
            .order("created_at", desc=True)
            .execute()
        )
        return resp.data or []

    def latest_success(self, project_id: str) -> Optional[Dict[str, Any]]:
        resp = (
            self.db.table("build_jobs")
            .select("*")
            .eq("project_id", str(project_id))
            .eq("status", BuildStatus.SUCCESS.value)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        return first_row(resp)

    def artifact_url(self, build_job_id: str) -> str:
        return f"{self.settings.ARTIFACT_BASE_URL.rstrip('/')}/builds/{build_job_id}.zip"

    def _update(self, build_job_id: str, fields: Dict[str, Any]) -> None:
        fields["updated_at"] = utcnow()
        self.db.table("build_jobs").update(fields).eq("id", build_job_id).execute()

    async def run(self, build_job_id: str, project_id: str) -> Dict[str, Any]:
        logger.info("starting build for project %s, job %s", project_id, build_job_id)
        started = time.monotonic()
        self._update(build_job_id, {"status": BuildStatus.BUILDING.value, "started_at": utcnow()})

        build_log = "Starting build process...\n"
        try:
            build_log += "Fetching code files...\n"
            files = (
                self.db.table("code_files")
                .select("file_path")
                .eq("project_id", str(project_id))
                .execute()
            ).data or []
            build_log += f"Found {len(files)} files\n"

            if not files:
                raise BuildError("No code files to build")

            for step in BUILD_STEPS:
                await asyncio.sleep(self.settings.BUILD_STEP_DELAY)
                build_log += f"{step}\n"

        except Exception as exc:
            logger.error("build %s failed: %s", build_job_id, exc)
            build_log += f"Build failed: {exc}\n"
            self._update(
                build_job_id,
                {
                    "status": BuildStatus.FAILED.value,
                    "build_log": build_log,
                    "duration": int(time.monotonic() - started),
                    "completed_at": utcnow(),
                },
            )
            return {"success": False, "buildJobId": build_job_id, "error": str(exc)}

        duration = int(time.monotonic() - started)
        artifact_url = self.artifact_url(build_job_id)
        self._update(
            build_job_id,
            {
                "status": BuildStatus.SUCCESS.value,
                "build_log": build_log,
                "duration": duration,
                "completed_at": utcnow(),
                "artifact_url": artifact_url,
            },
        )
        logger.info("build completed successfully for job %s", build_job_id)
        return {"success": True, "buildJobId": build_job_id, "duration": duration, "artifactUrl": artifact_url}
