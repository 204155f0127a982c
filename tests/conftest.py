from __future__ import annotations

import copy
import itertools
import json
import uuid
from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from promptforge.agent.llm_router import LLMRouter
from promptforge.app import app
from promptforge.auth import User, get_current_user
from promptforge.db import get_db
from promptforge.deps import get_llm
from promptforge.settings import Settings, get_settings

USER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_USER_ID = "22222222-2222-4222-8222-222222222222"

UNIQUE = {
    "code_files": ("project_id", "file_path"),
    "users": ("email",),
}


# --------------------------------------------------------------------
# in-memory stand-in for the supabase-py query builder
# --------------------------------------------------------------------


class FakeAPIError(Exception):
    pass


def _sort_key(row, column):
    value = row.get(column)
    return (value is None, value if value is not None else 0, row["_seq"])


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.columns = "*"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.ordering = []
        self.max_rows = None

    # actions
    def select(self, columns="*"):
        self.action, self.columns = "select", columns
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.action, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    # filters
    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column, value):
        if value == "null":
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: row.get(column) == value)
        return self

    def gt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row[column] > value)
        return self

    def order(self, column, desc=False):
        self.ordering.append((column, desc))
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    # execution
    def _matching(self):
        return [row for row in self.db.rows(self.table) if all(f(row) for f in self.filters)]

    def _project(self, row):
        clean = {k: v for k, v in row.items() if not k.startswith("_")}
        if self.columns == "*":
            return copy.deepcopy(clean)
        wanted = [c.strip() for c in self.columns.split(",")]
        return {c: copy.deepcopy(clean.get(c)) for c in wanted}

    def execute(self):
        if self.action == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([self._project(self.db.add(self.table, r)) for r in rows])

        if self.action == "upsert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            out = []
            for r in rows:
                existing = next(
                    (row for row in self.db.rows(self.table) if all(row.get(k) == r.get(k) for k in keys)),
                    None,
                )
                if existing:
                    existing.update(copy.deepcopy(r))
                    out.append(self._project(existing))
                else:
                    out.append(self._project(self.db.add(self.table, r)))
            return FakeResponse(out)

        matched = self._matching()

        if self.action == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse([self._project(r) for r in matched])

        if self.action == "delete":
            gone = {id(r) for r in matched}
            self.db.tables[self.table] = [r for r in self.db.rows(self.table) if id(r) not in gone]
            return FakeResponse([self._project(r) for r in matched])

        for column, desc in reversed(self.ordering):
            matched.sort(key=lambda r: _sort_key(r, column), reverse=desc)
        if self.max_rows is not None:
            matched = matched[: self.max_rows]
        return FakeResponse([self._project(r) for r in matched])


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self._seq = itertools.count()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str):
        return self.tables.setdefault(name, [])

    def add(self, name: str, payload: dict) -> dict:
        row = copy.deepcopy(payload)
        unique = UNIQUE.get(name)
        if unique and any(all(r.get(k) == row.get(k) for k in unique) for r in self.rows(name)):
            raise FakeAPIError(f"duplicate key value violates unique constraint on {name}")
        now = datetime.now(timezone.utc).isoformat()
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        row["_seq"] = next(self._seq)
        self.rows(name).append(row)
        return row

    def seed(self, table: str, /, **fields) -> dict:
        return {k: v for k, v in self.add(table, fields).items() if not k.startswith("_")}


# --------------------------------------------------------------------
# scripted chat-completions provider
# --------------------------------------------------------------------


class ScriptedLLM:
    """Plays back queued completions and records every request body."""

    def __init__(self):
        self.replies = []
        self.requests = []

    def reply(self, content, model="gpt-test", usage=None):
        self.replies.append(
            httpx.Response(
                200,
                json={
                    "model": model,
                    "choices": [{"message": {"role": "assistant", "content": content}}],
                    "usage": usage or {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
                },
            )
        )

    def reply_json(self, payload, **kwargs):
        self.reply(json.dumps(payload), **kwargs)

    def fail(self, status, message="provider error"):
        self.replies.append(httpx.Response(status, json={"error": {"message": message}}))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if not self.replies:
            return httpx.Response(400, json={"error": {"message": "no scripted reply"}})
        return self.replies.pop(0)


# --------------------------------------------------------------------
# fixtures
# --------------------------------------------------------------------


@pytest.fixture()
def settings():
    return Settings(
        LLM_API_KEY="test-key",
        LLM_BASE_URL="https://llm.test/v1",
        LLM_RETRY_BACKOFF=0,
        BUILD_STEP_DELAY=0,
        DEPLOY_STEP_DELAY=0,
        SECRET_KEY="test-secret",
    )


@pytest.fixture()
def db():
    fake = FakeSupabase()
    fake.seed("users", id=USER_ID, email="dev@promptforge.io", password_hash="x")
    fake.seed("users", id=OTHER_USER_ID, email="other@promptforge.io", password_hash="x")
    return fake


@pytest.fixture()
def user():
    return User(id=uuid.UUID(USER_ID), email="dev@promptforge.io")


@pytest.fixture()
def scripted_llm():
    return ScriptedLLM()


@pytest.fixture()
def llm(settings, scripted_llm):
    return LLMRouter(settings, transport=httpx.MockTransport(scripted_llm.handler))


@pytest.fixture()
def project(db):
    return db.seed("projects", user_id=USER_ID, name="Demo", status="active", deleted_at=None)


@pytest.fixture()
def conversation(db, project):
    return db.seed("conversations", project_id=project["id"], title="Chat")


@pytest.fixture()
def client(db, settings, user, llm):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_llm] = lambda: llm
    yield TestClient(app)
    app.dependency_overrides.clear()
