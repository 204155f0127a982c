from __future__ import annotations

import io
import json
import zipfile

import pytest

from promptforge.builder import BUILD_STEPS, BuildPipeline
from promptforge.deployer import NO_BUILD_MESSAGE, DeploymentPipeline, step_delay
from promptforge.exporter import ProjectExporter


def _row(db, table, row_id):
    return next(row for row in db.rows(table) if row["id"] == row_id)


@pytest.mark.asyncio
async def test_build_success(db, settings, project):
    db.seed("code_files", project_id=project["id"], file_path="src/App.tsx", content="x")
    pipeline = BuildPipeline(db, settings)
    job = pipeline.create_job(project["id"])
    assert job["status"] == "queued"

    out = await pipeline.run(job["id"], project["id"])

    assert out["success"] is True
    assert out["artifactUrl"] == f"https://cdn.example.com/builds/{job['id']}.zip"
    stored = _row(db, "build_jobs", job["id"])
    assert stored["status"] == "success"
    assert stored["build_log"].startswith("Starting build process...\n")
    assert "Found 1 files" in stored["build_log"]
    assert stored["build_log"].rstrip().endswith(BUILD_STEPS[-1])
    assert pipeline.latest_success(project["id"])["id"] == job["id"]


@pytest.mark.asyncio
async def test_build_without_files_fails(db, settings, project):
    pipeline = BuildPipeline(db, settings)
    job = pipeline.create_job(project["id"])

    out = await pipeline.run(job["id"], project["id"])

    assert out == {"success": False, "buildJobId": job["id"], "error": "No code files to build"}
    stored = _row(db, "build_jobs", job["id"])
    assert stored["status"] == "failed"
    assert "Build failed: No code files to build" in stored["build_log"]
    assert pipeline.latest_success(project["id"]) is None


def test_deployment_urls(db, settings):
    pipeline = DeploymentPipeline(db, settings)
    pid = "abcdef12-3456-7890-abcd-ef1234567890"
    assert pipeline.deployment_url(pid, "production") == "https://abcdef12.netlify.app"
    assert pipeline.deployment_url(pid, "staging") == "https://staging-abcdef12.netlify.app"


def test_step_delays_scale_with_step_kind():
    assert step_delay("Installing dependencies...", 1.5) == 3.0
    assert step_delay("Building production bundle...", 1.5) == pytest.approx(2.5)
    assert step_delay("Optimizing assets...", 1.5) == pytest.approx(2.0)
    assert step_delay("Setting up CDN...", 1.5) == 1.5


@pytest.mark.asyncio
async def test_deploy_requires_successful_build(db, settings, project):
    pipeline = DeploymentPipeline(db, settings)
    deployment = pipeline.create(project["id"], "production")

    out = await pipeline.run(deployment["id"], project["id"])

    assert out["success"] is False
    assert out["error"] == NO_BUILD_MESSAGE
    assert _row(db, "deployments", deployment["id"])["deployment_log"] == f"Deployment failed: {NO_BUILD_MESSAGE}"
    assert _row(db, "projects", project["id"])["status"] == "error"


@pytest.mark.asyncio
async def test_production_deploy_updates_project(db, settings, project):
    db.seed("build_jobs", project_id=project["id"], status="success", artifact_url="https://cdn/x.zip")
    pipeline = DeploymentPipeline(db, settings)
    deployment = pipeline.create(project["id"], "production")

    out = await pipeline.run(deployment["id"], project["id"])

    assert out["success"] is True
    stored = _row(db, "deployments", deployment["id"])
    assert stored["status"] == "success"
    assert stored["url"] == out["url"]
    assert "Using build artifact: https://cdn/x.zip" in stored["deployment_log"]
    proj = _row(db, "projects", project["id"])
    assert proj["status"] == "active"
    assert proj["deployment_url"] == out["url"]


@pytest.mark.asyncio
async def test_preview_deploy_leaves_project_url_alone(db, settings, project):
    db.seed("build_jobs", project_id=project["id"], status="success", artifact_url="https://cdn/x.zip")
    pipeline = DeploymentPipeline(db, settings)
    deployment = pipeline.create(project["id"], "staging")

    out = await pipeline.run(deployment["id"], project["id"])

    assert out["url"].startswith("https://staging-")
    assert _row(db, "projects", project["id"]).get("deployment_url") is None


def test_export_zip_contents(db, project):
    db.seed("code_files", project_id=project["id"], file_path="src/App.tsx", content="app")
    db.seed("code_files", project_id=project["id"], file_path="package.json", content="{}")

    pkg = ProjectExporter(db).package(project["id"])

    assert pkg["success"] is True
    assert pkg["filename"].startswith(f"promptforge_{project['id'][:8]}_")
    with zipfile.ZipFile(io.BytesIO(pkg["bytes"])) as archive:
        assert sorted(archive.namelist()) == ["package.json", "project.manifest.json", "src/App.tsx"]
        manifest = json.loads(archive.read("project.manifest.json"))
    assert manifest["file_count"] == 2
    assert manifest["name"] == "Demo"


def test_export_empty_project(db, project):
    assert ProjectExporter(db).package(project["id"]) == {
        "success": False,
        "error": "Project has no files to export.",
    }
