"""
monitor_events.py — Emits execution progress to DB + WS

Purpose:
- Every execution step logs to `execution_logs` (Supabase)
- Session counters/status live on `execution_sessions`
- Also sends WebSocket push to anyone watching the session
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from supabase import Client

from .db import utcnow
from .models import LogLevel, SessionStatus
from .ws_progress import broadcast

logger = logging.getLogger(__name__)

_LEVELS = {
    LogLevel.INFO.value: logging.INFO,
    LogLevel.SUCCESS.value: logging.INFO,
    LogLevel.WARNING.value: logging.WARNING,
    LogLevel.ERROR.value: logging.ERROR,
}


class ExecutionMonitor:

    def __init__(self, db: Client):
        self.db = db

    async def log_step(
        self,
        session_id: Optional[str],
        step_number: int,
        message: str,
        level: str = LogLevel.INFO.value,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not session_id:
            return

        logger.log(_LEVELS.get(level, logging.INFO), "[session %s step %s] %s", session_id, step_number, message)

        self.db.table("execution_logs").insert(
            {
                "session_id": session_id,
                "step_number": step_number,
                "message": message,
                "log_level": level,
                "details": details or {},
            }
        ).execute()

        await broadcast(
            session_id,
            {
                "type": "log",
                "session_id": session_id,
                "step_number": step_number,
                "message": message,
                "log_level": level,
                "ts": utcnow(),
            },
        )

    async def update_progress(
        self,
        session_id: Optional[str],
        completed_steps: int,
        status: str = SessionStatus.RUNNING.value,
        error_message: Optional[str] = None,
    ) -> None:
        if not session_id:
            return

        self.db.table("execution_sessions").update(
            {
                "completed_steps": completed_steps,
                "status": status,
                "error_message": error_message,
                "updated_at": utcnow(),
            }
        ).eq("id", session_id).execute()

        await broadcast(
            session_id,
            {
                "type": "progress",
                "session_id": session_id,
                "completed_steps": completed_steps,
                "status": status,
                "error_message": error_message,
                "ts": utcnow(),
            },
        )

    def set_total_steps(self, session_id: Optional[str], total: int) -> None:
        if not session_id:
            return
        self.db.table("execution_sessions").update(
            {"total_steps": total, "updated_at": utcnow()}
        ).eq("id", session_id).execute()
