"""
deployer.py — promptforge deployment pipeline (simulated)

deployments: id, project_id, environment, build_command, status,
             deployment_log, duration, url, started_at, completed_at

pending -> deploying -> success | failed

A deployment ships the latest successful build of the project; the
project row follows along (deploying -> active | error).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List

from supabase import Client

from .builder import BuildPipeline
from .db import first_row, utcnow
from .models import DeploymentStatus, ProjectStatus
from .settings import Settings

logger = logging.getLogger(__name__)

DEPLOY_STEPS = [
    "Downloading build artifact...",
    "Extracting files...",
    "Processing React components...",
    "Setting up CDN...",
    "Configuring routing...",
    "Installing dependencies...",
    "Building production bundle...",
    "Optimizing assets...",
    "Starting services...",
    "Running health checks...",
    "Deployment completed successfully!",
]

NO_BUILD_MESSAGE = "No successful build found. Please build the project first."


class DeploymentError(RuntimeError):
    pass


def step_delay(step: str, base: float) -> float:
    """Installs take longest, then bundling, then optimizing."""
    if "Installing" in step:
        return base * 2
    if "Building" in step:
        return base * 5 / 3
    if "Optimizing" in step:
        return base * 4 / 3
    return base


class DeploymentPipeline:

    def __init__(self, db: Client, settings: Settings):
        self.db = db
        self.settings = settings
        self.builds = BuildPipeline(db, settings)

    def deployment_url(self, project_id: str, environment: str) -> str:
        slug = str(project_id)[:8]
        prefix = "" if environment == "production" else f"{environment}-"
        return f"https://{prefix}{slug}.{self.settings.DEPLOY_DOMAIN}"

    def create(self, project_id: str, environment: str, build_command: str = "npm run build") -> Dict[str, Any]:
        resp = (
            self.db.table("deployments")
            .insert(
                {
                    "project_id": str(project_id),
                    "environment": environment,
                    "build_command": build_command,
                    "status": DeploymentStatus.PENDING.value,
                }
            )
            .execute()
        )
        return first_row(resp)

    def list(self, project_id: str) -> List[Dict[str, Any]]:
        resp = (
            self.db.table("deployments")
            .select("*")
            .eq("project_id", str(project_id))
            .order("created_at", desc=True)
            .execute()
        )
        return resp.data or []

    def _update(self, deployment_id: str, fields: Dict[str, Any]) -> None:
        fields["updated_at"] = utcnow()
        self.db.table("deployments").update(fields).eq("id", deployment_id).execute()

    def _set_project(self, project_id: str, fields: Dict[str, Any]) -> None:
        fields["updated_at"] = utcnow()
        self.db.table("projects").update(fields).eq("id", str(project_id)).execute()

    async def run(self, deployment_id: str, project_id: str) -> Dict[str, Any]:
        logger.info("starting deployment for project %s, deployment %s", project_id, deployment_id)
        started = time.monotonic()

        try:
            self._update(deployment_id, {"status": DeploymentStatus.DEPLOYING.value, "started_at": utcnow()})
            self._set_project(project_id, {"status": ProjectStatus.DEPLOYING.value})

            deployment = first_row(
                self.db.table("deployments").select("*").eq("id", deployment_id).limit(1).execute()
            )
            if not deployment:
                raise DeploymentError(f"Deployment {deployment_id} not found")
            environment = deployment["environment"]

            latest_build = self.builds.latest_success(project_id)
            if not latest_build:
                raise DeploymentError(NO_BUILD_MESSAGE)

            files = (
                self.db.table("code_files").select("file_path").eq("project_id", str(project_id)).execute()
            ).data or []

            deployment_log = "Starting deployment...\n"
            deployment_log += f"Using build artifact: {latest_build.get('artifact_url')}\n"
            deployment_log += f"Deploying to environment: {environment}\n"
            deployment_log += f"Found {len(files)} code files\n"

            for step in DEPLOY_STEPS:
                await asyncio.sleep(step_delay(step, self.settings.DEPLOY_STEP_DELAY))
                deployment_log += f"{step}\n"

        except Exception as exc:
            logger.error("deployment %s failed: %s", deployment_id, exc)
            self._update(
                deployment_id,
                {
                    "status": DeploymentStatus.FAILED.value,
                    "deployment_log": f"Deployment failed: {exc}",
                    "completed_at": utcnow(),
                },
            )
            self._set_project(project_id, {"status": ProjectStatus.ERROR.value})
            return {"success": False, "deploymentId": deployment_id, "error": str(exc)}

        duration = int(time.monotonic() - started)
        url = self.deployment_url(project_id, environment)

        self._update(
            deployment_id,
            {
                "status": DeploymentStatus.SUCCESS.value,
                "deployment_log": deployment_log,
                "duration": duration,
                "url": url,
                "completed_at": utcnow(),
            },
        )

        project_fields: Dict[str, Any] = {"status": ProjectStatus.ACTIVE.value}
        if environment == "production":
            project_fields["deployment_url"] = url
        self._set_project(project_id, project_fields)

        logger.info("deployment completed successfully for %s -> %s", deployment_id, url)
        return {
            "success": True,
            "deploymentId": deployment_id,
            "url": url,
            "duration": duration,
            "environment": environment,
        }
