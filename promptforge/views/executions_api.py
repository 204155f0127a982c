"""
executions_api.py — promptforge AI file execution API

Endpoints:
- POST /executions/execute       prompt -> file operations -> code_files
- POST /executions/analyze       code analysis, no changes
- sessions / logs / artifacts    what the dashboard polls

Behavior:
- Creates (or reuses) an execution session
- Runs the executor; progress lands in execution_logs + WS
- Maps pipeline failures onto HTTP errors
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field
from supabase import Client

from ..agent.executor import FileExecutor
from ..agent.generator import FileStoreError
from ..agent.llm_router import LLMError
from ..agent.operations import OperationValidationError
from ..agent.usage import UsageLimitExceeded
from ..auth import User, get_current_user
from ..db import first_row, get_db, utcnow
from ..deps import ensure_conversation_owner, ensure_project_owner, ensure_session_owner, get_executor
from ..models import ExecutionMode, ExecutionRequest, ExecutionResult, SessionStatus

router = APIRouter(tags=["executions"])


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., min_length=1)
    conversation_id: Optional[str] = Field(None, alias="conversationId")
    context: Optional[str] = None


class SessionCreate(BaseModel):
    conversation_id: Optional[uuid.UUID] = None
    prompt: Optional[str] = None
    total_steps: int = 0


class SessionUpdate(BaseModel):
    status: Optional[SessionStatus] = None
    completed_steps: Optional[int] = Field(None, ge=0)
    total_steps: Optional[int] = Field(None, ge=0)
    error_message: Optional[str] = None


class Session(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    conversation_id: Optional[uuid.UUID] = None
    prompt: Optional[str] = None
    status: SessionStatus
    total_steps: int = 0
    completed_steps: int = 0
    error_message: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ExecutionLog(BaseModel):
    id: uuid.UUID
    session_id: uuid.UUID
    step_number: int
    message: str
    log_level: str
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


class ExecutionArtifact(BaseModel):
    id: uuid.UUID
    session_id: uuid.UUID
    artifact_type: str
    file_path: Optional[str] = None
    content: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


async def _run(executor: FileExecutor, job: ExecutionRequest, user: User, http_request: Request) -> ExecutionResult:
    try:
        result = await executor.execute(job, user_id=str(user.id))
    except UsageLimitExceeded as exc:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc))
    except OperationValidationError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid operations: {exc}")
    except FileStoreError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except LLMError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    http_request.state.session_id = result.session_id
    return result


# -------------------------------------------------------------------
# Pipeline
# -------------------------------------------------------------------


@router.post("/executions/execute", response_model=ExecutionResult)
async def execute(
    body: ExecutionRequest,
    http_request: Request,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    executor: FileExecutor = Depends(get_executor),
):
    if not body.project_id:
        raise HTTPException(status_code=400, detail="projectId is required")
    ensure_project_owner(db, body.project_id, user)
    if body.session_id:
        session = ensure_session_owner(db, body.session_id, user)
        if session["project_id"] != body.project_id:
            raise HTTPException(status_code=400, detail="Session belongs to another project")
    if body.conversation_id:
        ensure_conversation_owner(db, body.conversation_id, user)

    job = body.model_copy(update={"mode": ExecutionMode.EXECUTE})
    return await _run(executor, job, user, http_request)


@router.post("/executions/analyze", response_model=ExecutionResult)
async def analyze(
    body: AnalyzeRequest,
    http_request: Request,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    executor: FileExecutor = Depends(get_executor),
):
    if body.conversation_id:
        ensure_conversation_owner(db, body.conversation_id, user)

    prompt = "[ANALYSIS MODE] Analyze this code and provide insights: "
    if body.context:
        prompt += f"Context: {body.context}\n"
    prompt += f"Code: {body.code}"

    job = ExecutionRequest(
        prompt=prompt,
        conversation_id=body.conversation_id,
        existing_files=[],
        mode=ExecutionMode.ANALYZE,
    )
    return await _run(executor, job, user, http_request)


# -------------------------------------------------------------------
# Sessions
# -------------------------------------------------------------------


@router.get("/projects/{project_id}/sessions", response_model=List[Session])
def list_sessions(project_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    ensure_project_owner(db, project_id, user)
    resp = (
        db.table("execution_sessions")
        .select("*")
        .eq("project_id", str(project_id))
        .order("created_at", desc=True)
        .execute()
    )
    return resp.data or []


@router.post("/projects/{project_id}/sessions", response_model=Session, status_code=status.HTTP_201_CREATED)
def create_session(
    project_id: uuid.UUID,
    body: SessionCreate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_project_owner(db, project_id, user)
    return first_row(
        db.table("execution_sessions")
        .insert(
            {
                "project_id": str(project_id),
                "conversation_id": str(body.conversation_id) if body.conversation_id else None,
                "prompt": body.prompt,
                "status": SessionStatus.PENDING.value,
                "total_steps": body.total_steps,
                "completed_steps": 0,
            }
        )
        .execute()
    )


@router.get("/sessions/{session_id}", response_model=Session)
def get_session(session_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    return ensure_session_owner(db, session_id, user)


@router.patch("/sessions/{session_id}", response_model=Session)
def update_session(
    session_id: uuid.UUID,
    body: SessionUpdate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    session = ensure_session_owner(db, session_id, user)
    updates = body.model_dump(exclude_none=True, mode="json")
    if not updates:
        return session
    updates["updated_at"] = utcnow()
    return first_row(db.table("execution_sessions").update(updates).eq("id", str(session_id)).execute())


@router.get("/sessions/{session_id}/logs", response_model=List[ExecutionLog])
def list_logs(
    session_id: uuid.UUID,
    after_step: Optional[int] = None,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_session_owner(db, session_id, user)
    query = db.table("execution_logs").select("*").eq("session_id", str(session_id))
    if after_step is not None:
        query = query.gt("step_number", after_step)
    resp = query.order("created_at").execute()
    return resp.data or []


@router.get("/sessions/{session_id}/artifacts", response_model=List[ExecutionArtifact])
def list_artifacts(
    session_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_session_owner(db, session_id, user)
    resp = (
        db.table("execution_artifacts")
        .select("*")
        .eq("session_id", str(session_id))
        .order("created_at")
        .execute()
    )
    return resp.data or []
