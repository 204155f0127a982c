"""
conversations_api.py — promptforge conversations & messages

- conversations: id, project_id, title, created_at, updated_at
- messages:      id, conversation_id, role, content, metadata, created_at
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from supabase import Client

from ..auth import User, get_current_user
from ..db import first_row, get_db, utcnow
from ..deps import ensure_conversation_owner, ensure_project_owner
from ..models import MessageRole

router = APIRouter(tags=["conversations"])


class ConversationCreate(BaseModel):
    title: Optional[str] = None


class Conversation(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    title: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MessageCreate(BaseModel):
    role: MessageRole = MessageRole.USER
    content: str
    metadata: Optional[Dict[str, Any]] = None


class Message(BaseModel):
    id: uuid.UUID
    conversation_id: uuid.UUID
    role: MessageRole
    content: str
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


@router.get("/projects/{project_id}/conversations", response_model=List[Conversation])
def list_conversations(project_id: uuid.UUID, user: User = Depends(get_current_user), db: Client = Depends(get_db)):
    ensure_project_owner(db, project_id, user)
    resp = (
        db.table("conversations")
        .select("*")
        .eq("project_id", str(project_id))
        .order("updated_at", desc=True)
        .execute()
    )
    return resp.data or []


@router.post(
    "/projects/{project_id}/conversations",
    response_model=Conversation,
    status_code=status.HTTP_201_CREATED,
)
def create_conversation(
    project_id: uuid.UUID,
    body: ConversationCreate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_project_owner(db, project_id, user)
    return first_row(
        db.table("conversations")
        .insert({"project_id": str(project_id), "title": body.title or "New conversation"})
        .execute()
    )


@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_conversation(
    conversation_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_conversation_owner(db, conversation_id, user)
    db.table("messages").delete().eq("conversation_id", str(conversation_id)).execute()
    db.table("conversations").delete().eq("id", str(conversation_id)).execute()


@router.get("/conversations/{conversation_id}/messages", response_model=List[Message])
def list_messages(
    conversation_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_conversation_owner(db, conversation_id, user)
    resp = (
        db.table("messages")
        .select("*")
        .eq("conversation_id", str(conversation_id))
        .order("created_at")
        .execute()
    )
    return resp.data or []


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=Message,
    status_code=status.HTTP_201_CREATED,
)
def create_message(
    conversation_id: uuid.UUID,
    body: MessageCreate,
    user: User = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    ensure_conversation_owner(db, conversation_id, user)
    row = first_row(
        db.table("messages")
        .insert(
            {
                "conversation_id": str(conversation_id),
                "role": body.role.value,
                "content": body.content,
                "metadata": body.metadata or {},
            }
        )
        .execute()
    )
    db.table("conversations").update({"updated_at": utcnow()}).eq("id", str(conversation_id)).execute()
    return row
