"""
deps.py — shared FastAPI dependencies and ownership checks
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, HTTPException, status
from supabase import Client

from .agent.assistant import Assistant
from .agent.executor import FileExecutor
from .agent.llm_router import LLMRouter
from .auth import User
from .db import first_row, get_db
from .monitor_events import ExecutionMonitor
from .settings import Settings, get_settings


def get_llm(settings: Settings = Depends(get_settings)) -> LLMRouter:
    return LLMRouter(settings)


def get_executor(
    db: Client = Depends(get_db),
    llm: LLMRouter = Depends(get_llm),
    settings: Settings = Depends(get_settings),
) -> FileExecutor:
    return FileExecutor(db, llm, settings, monitor=ExecutionMonitor(db))


def get_assistant(
    db: Client = Depends(get_db),
    llm: LLMRouter = Depends(get_llm),
    settings: Settings = Depends(get_settings),
) -> Assistant:
    return Assistant(db, llm, settings)


def ensure_project_owner(db: Client, project_id: Any, user: User, allow_deleted: bool = False) -> Dict[str, Any]:
    """
    Raise HTTP 404 if project does not exist, is not owned by the user,
    or sits in the trash (unless `allow_deleted`).
    """
    data = first_row(db.table("projects").select("*").eq("id", str(project_id)).limit(1).execute())
    if not data or data.get("user_id") != str(user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    if data.get("deleted_at") and not allow_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return data


def ensure_session_owner(db: Client, session_id: Any, user: User) -> Dict[str, Any]:
    session = first_row(
        db.table("execution_sessions").select("*").eq("id", str(session_id)).limit(1).execute()
    )
    if not session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    ensure_project_owner(db, session["project_id"], user)
    return session


def ensure_conversation_owner(db: Client, conversation_id: Any, user: User) -> Dict[str, Any]:
    conversation = first_row(
        db.table("conversations").select("*").eq("id", str(conversation_id)).limit(1).execute()
    )
    if not conversation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    ensure_project_owner(db, conversation["project_id"], user)
    return conversation
