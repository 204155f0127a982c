"""
assistant_api.py — promptforge AI assistant endpoints

- POST /assistant/chat           coding assistant reply (stored in messages)
- POST /assistant/generate-code  single file + suggested filename
- POST /assistant/autonomous     multi-file task written straight to code_files
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from supabase import Client

from ..agent.assistant import Assistant
from ..agent.llm_router import LLMError
from ..agent.usage import UsageLimitExceeded
from ..auth import User, get_current_user
from ..db import first_row, get_db
from ..deps import ensure_conversation_owner, ensure_project_owner, get_assistant

router = APIRouter(prefix="/assistant", tags=["assistant"])


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    conversation_id: uuid.UUID
    project_files: Optional[List[Any]] = None
    model_id: Optional[uuid.UUID] = None


class ChatResponse(BaseModel):
    response: str
    model: str
    tokens_used: int = 0


class CodeGenRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    project_id: Optional[uuid.UUID] = None
    file_type: str = "tsx"
    existing_files: Optional[List[Any]] = None


class CodeGenResponse(BaseModel):
    code: str
    suggested_filename: str


class AutonomousRequest(BaseModel):
    project_id: uuid.UUID
    task: str = Field(..., min_length=1)
    task_type: str = "feature"


class AutonomousResponse(BaseModel):
    result: str
    filesCreated: List[str]
    dependenciesAdded: List[str]
    instructions: str


def _model_name(db: Client, model_id: Optional[uuid.UUID]) -> Optional[str]:
    if not model_id:
        return None
    row = first_row(db.table("ai_models").select("model_name,is_active").eq("id", str(model_id)).limit(1).execute())
    if not row or not row.get("is_active"):
        raise HTTPException(status_code=400, detail="Unknown or inactive model")
    return row["model_name"]


async def _guard(coro) -> Dict[str, Any]:
    try:
        return await coro
    except UsageLimitExceeded as exc:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc))
    except LLMError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    assistant: Assistant = Depends(get_assistant),
):
    ensure_conversation_owner(db, body.conversation_id, user)
    model = _model_name(db, body.model_id)
    return await _guard(
        assistant.chat(
            body.message,
            str(body.conversation_id),
            project_files=body.project_files,
            model=model,
            user_id=str(user.id),
        )
    )


@router.post("/generate-code", response_model=CodeGenResponse)
async def generate_code(
    body: CodeGenRequest,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    assistant: Assistant = Depends(get_assistant),
):
    if body.project_id:
        ensure_project_owner(db, body.project_id, user)
    return await _guard(
        assistant.generate_code(
            body.prompt,
            file_type=body.file_type,
            existing_files=body.existing_files,
            user_id=str(user.id),
        )
    )


@router.post("/autonomous", response_model=AutonomousResponse)
async def autonomous(
    body: AutonomousRequest,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
    assistant: Assistant = Depends(get_assistant),
):
    ensure_project_owner(db, body.project_id, user)
    return await _guard(
        assistant.run_autonomous(
            str(body.project_id),
            body.task,
            task_type=body.task_type,
            user_id=str(user.id),
        )
    )
