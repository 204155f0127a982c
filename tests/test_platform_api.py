from __future__ import annotations

import io
import json
import logging
import zipfile

import pytest
from fastapi.testclient import TestClient

from promptforge.app import app
from promptforge.db import get_db
from promptforge.settings import get_settings

from conftest import USER_ID


def test_health_echoes_request_id(client):
    resp = client.get("/health", headers={"x-request-id": "abc-123"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["x-request-id"] == "abc-123"


def _request_lines(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == "promptforge.requests"]


def test_request_log_carries_execution_session(client, scripted_llm, project, caplog):
    caplog.set_level(logging.INFO, logger="promptforge.requests")
    scripted_llm.reply_json({"response": "ok", "operations": []})

    resp = client.post("/executions/execute", json={"prompt": "x", "projectId": project["id"]})

    line = _request_lines(caplog)[-1]
    assert line["path"] == "/executions/execute"
    assert line["status"] == 200
    assert line["session_id"] == resp.json()["sessionId"]


# ------------------------------------------------------------------
# auth
# ------------------------------------------------------------------


@pytest.fixture()
def anon_client(db, settings):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_signup_login_me(anon_client):
    creds = {"email": "New.User@promptforge.io", "password": "correct horse"}

    signup = anon_client.post("/auth/signup", json=creds)
    assert signup.status_code == 201
    assert anon_client.post("/auth/signup", json=creds).status_code == 409

    assert anon_client.post("/auth/login", json={**creds, "password": "wrong pass"}).status_code == 400
    token = anon_client.post("/auth/login", json=creds).json()["access_token"]

    me = anon_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "new.user@promptforge.io"


def test_garbage_token_is_rejected(anon_client):
    resp = anon_client.get("/projects", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


def test_request_log_carries_authenticated_user(anon_client, caplog):
    caplog.set_level(logging.INFO, logger="promptforge.requests")
    creds = {"email": "logged@promptforge.io", "password": "correct horse"}
    token = anon_client.post("/auth/signup", json=creds).json()["access_token"]

    user_id = anon_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).json()["id"]
    anon_client.get("/projects", headers={"Authorization": "Bearer not-a-token"})

    me_line, rejected_line = _request_lines(caplog)[-2:]
    assert me_line["user_id"] == user_id
    assert rejected_line["status"] == 401
    assert "user_id" not in rejected_line


# ------------------------------------------------------------------
# assistant
# ------------------------------------------------------------------


def test_assistant_chat_with_catalog_model(client, db, scripted_llm, conversation):
    model = db.seed("ai_models", name="Mini", model_name="gpt-4o-mini", provider="openai", is_active=True)
    scripted_llm.reply("hi there", model="gpt-4o-mini")

    resp = client.post(
        "/assistant/chat",
        json={"message": "hello", "conversation_id": conversation["id"], "model_id": model["id"]},
    )

    assert resp.status_code == 200
    assert resp.json() == {"response": "hi there", "model": "gpt-4o-mini", "tokens_used": 15}
    assert scripted_llm.requests[0]["model"] == "gpt-4o-mini"


def test_assistant_chat_rejects_inactive_model(client, db, conversation):
    model = db.seed("ai_models", name="Old", model_name="old-model", provider="openai", is_active=False)
    resp = client.post(
        "/assistant/chat",
        json={"message": "hello", "conversation_id": conversation["id"], "model_id": model["id"]},
    )
    assert resp.status_code == 400


def test_assistant_generate_code(client, scripted_llm):
    scripted_llm.reply("```tsx\nexport default 1;\n```")
    scripted_llm.reply("Thing.tsx")

    resp = client.post("/assistant/generate-code", json={"prompt": "a thing"})

    assert resp.json() == {"code": "export default 1;", "suggested_filename": "Thing.tsx"}


def test_assistant_autonomous(client, db, scripted_llm, project):
    scripted_llm.reply_json({"result": "done", "code": {"src/Todo.tsx": "todo"}, "instructions": "run it"})

    resp = client.post("/assistant/autonomous", json={"project_id": project["id"], "task": "todo app"})

    assert resp.status_code == 200
    assert resp.json()["filesCreated"] == ["src/Todo.tsx"]
    assert db.rows("code_files")[0]["content"] == "todo"


def test_assistant_llm_failure(client, scripted_llm, conversation):
    scripted_llm.fail(400, "context length exceeded")
    resp = client.post("/assistant/chat", json={"message": "hello", "conversation_id": conversation["id"]})
    assert resp.status_code == 502


# ------------------------------------------------------------------
# builds / deployments / environments
# ------------------------------------------------------------------


def test_build_then_deploy(client, db, project):
    db.seed("code_files", project_id=project["id"], file_path="src/App.tsx", content="app")

    queued = client.post(f"/projects/{project['id']}/builds", json={})
    assert queued.status_code == 202
    assert queued.json()["status"] == "queued"

    builds = client.get(f"/projects/{project['id']}/builds").json()
    assert builds["is_building"] is False
    assert builds["latest"]["status"] == "success"
    assert client.get(f"/builds/{queued.json()['id']}").json()["artifact_url"].endswith(".zip")

    deploy = client.post(f"/projects/{project['id']}/deployments", json={"environment": "production"})
    assert deploy.status_code == 202

    finished = client.get(f"/deployments/{deploy.json()['id']}").json()
    assert finished["status"] == "success"
    assert finished["url"] == f"https://{project['id'][:8]}.netlify.app"
    assert client.get(f"/projects/{project['id']}").json()["deployment_url"] == finished["url"]
    assert len(client.get(f"/projects/{project['id']}/deployments").json()) == 1


def test_deploy_without_build_fails(client, project):
    deploy = client.post(f"/projects/{project['id']}/deployments", json={"environment": "staging"})
    finished = client.get(f"/deployments/{deploy.json()['id']}").json()
    assert finished["status"] == "failed"
    assert client.get(f"/projects/{project['id']}").json()["status"] == "error"


def test_deploy_rejects_bad_environment_name(client, project):
    resp = client.post(f"/projects/{project['id']}/deployments", json={"environment": "Prod Env!"})
    assert resp.status_code == 422


def test_environments_crud(client, project):
    base = f"/projects/{project['id']}/environments"
    created = client.post(base, json={"name": "staging", "variables": {"API_URL": "https://staging"}})
    assert created.status_code == 201
    env_id = created.json()["id"]

    assert client.post(base, json={"name": "staging"}).status_code == 409

    patched = client.patch(f"/environments/{env_id}", json={"variables": {"API_URL": "https://new"}})
    assert patched.json()["variables"] == {"API_URL": "https://new"}

    assert client.delete(f"/environments/{env_id}").status_code == 204
    assert client.get(base).json() == []


# ------------------------------------------------------------------
# admin / billing / export
# ------------------------------------------------------------------


def test_ai_models_listing(client):
    active = client.post(
        "/admin/ai-models",
        json={"name": "GPT", "provider": "openai", "model_name": "gpt-x", "cost_per_input_token": 0.001},
    )
    assert active.status_code == 201
    inactive = client.post(
        "/admin/ai-models", json={"name": "Old", "provider": "openai", "model_name": "old", "is_active": False}
    )
    assert client.post("/admin/ai-models", json={"name": "GPT", "provider": "openai", "model_name": "gpt-x"}).status_code == 409

    assert [m["model_name"] for m in client.get("/admin/ai-models").json()] == ["gpt-x"]
    assert len(client.get("/admin/ai-models", params={"include_inactive": True}).json()) == 2

    updated = client.patch(f"/admin/ai-models/{inactive.json()['id']}", json={"is_active": True})
    assert updated.json()["is_active"] is True


def test_system_prompt_versioning_and_activation(client):
    first = client.post("/admin/system-prompts", json={"name": "A", "content": "one", "category": "coding", "is_active": True}).json()
    second = client.post("/admin/system-prompts", json={"name": "B", "content": "two", "category": "coding"}).json()
    assert first["version"] == 1

    bumped = client.patch(f"/admin/system-prompts/{second['id']}", json={"content": "two v2"}).json()
    assert bumped["version"] == 2
    same = client.patch(f"/admin/system-prompts/{second['id']}", json={"name": "B renamed"}).json()
    assert same["version"] == 2

    client.post(f"/admin/system-prompts/{second['id']}/activate")
    prompts = {p["name"]: p for p in client.get("/admin/system-prompts", params={"category": "coding"}).json()}
    assert prompts["A"]["is_active"] is False
    assert prompts["B renamed"]["is_active"] is True

    assert client.delete(f"/admin/system-prompts/{first['id']}").status_code == 204
    assert client.delete(f"/admin/system-prompts/{first['id']}").status_code == 404


def test_billing_flow(client, settings):
    assert client.get("/billing").status_code == 404

    opened = client.post("/billing/init")
    assert opened.status_code == 201
    assert opened.json()["monthly_limit"] == settings.DEFAULT_MONTHLY_LIMIT
    assert opened.json()["user_id"] == USER_ID

    upgraded = client.patch("/billing", json={"plan_name": "pro", "billing_cycle_end": "2026-12-01T00:00:00+00:00"})
    assert upgraded.status_code == 200
    assert upgraded.json()["plan_name"] == "pro"
    assert client.get("/billing").json()["billing_cycle_end"] == "2026-12-01T00:00:00+00:00"


@pytest.mark.parametrize(
    "patch",
    [{"current_usage": 0}, {"monthly_limit": 1e9}, {"status": "active"}],
)
def test_billing_patch_cannot_lift_usage_gate(client, db, project, patch):
    db.seed("user_billing", user_id=USER_ID, plan_name="free", status="trial", monthly_limit=1.0, current_usage=1.0)

    assert client.patch("/billing", json=patch).status_code == 422

    account = client.get("/billing").json()
    assert account["current_usage"] == 1.0
    assert account["monthly_limit"] == 1.0
    assert client.post("/executions/execute", json={"prompt": "x", "projectId": project["id"]}).status_code == 402


def test_export_download(client, db, project):
    assert client.get(f"/export/{project['id']}").status_code == 400

    db.seed("code_files", project_id=project["id"], file_path="index.html", content="<html/>")
    resp = client.get(f"/export/{project['id']}")

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/zip"
    assert "attachment" in resp.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(resp.content)) as archive:
        assert "index.html" in archive.namelist()
