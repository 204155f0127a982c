from __future__ import annotations

import pytest

from promptforge import ws_progress
from promptforge.monitor_events import ExecutionMonitor


class RecordingSocket:
    def __init__(self, broken=False):
        self.sent = []
        self.broken = broken

    async def send_json(self, payload):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(payload)


@pytest.fixture()
def sockets(monkeypatch):
    registry = {}
    monkeypatch.setattr(ws_progress, "connections", registry)
    return registry


@pytest.mark.asyncio
async def test_log_step_persists_and_pushes(db, sockets):
    live, dead = RecordingSocket(), RecordingSocket(broken=True)
    sockets["s1"] = [live, dead]

    await ExecutionMonitor(db).log_step("s1", 3, "Executing create operation on a.ts", "info", {"k": "v"})

    row = db.rows("execution_logs")[0]
    assert (row["session_id"], row["step_number"], row["message"], row["details"]) == (
        "s1", 3, "Executing create operation on a.ts", {"k": "v"},
    )
    assert live.sent[0]["type"] == "log"
    assert live.sent[0]["step_number"] == 3
    assert sockets["s1"] == [live]


@pytest.mark.asyncio
async def test_update_progress(db, sockets):
    session = db.seed("execution_sessions", project_id="p", status="running", completed_steps=0, total_steps=2)
    watcher = RecordingSocket()
    sockets[session["id"]] = [watcher]
    monitor = ExecutionMonitor(db)

    monitor.set_total_steps(session["id"], 4)
    await monitor.update_progress(session["id"], 4, "completed")

    stored = db.rows("execution_sessions")[0]
    assert (stored["total_steps"], stored["completed_steps"], stored["status"]) == (4, 4, "completed")
    assert watcher.sent == [
        {
            "type": "progress",
            "session_id": session["id"],
            "completed_steps": 4,
            "status": "completed",
            "error_message": None,
            "ts": watcher.sent[0]["ts"],
        }
    ]


@pytest.mark.asyncio
async def test_no_session_means_no_tracking(db, sockets):
    monitor = ExecutionMonitor(db)
    await monitor.log_step(None, 0, "Starting analyze mode execution")
    await monitor.update_progress(None, 1, "completed")
    assert db.rows("execution_logs") == []
