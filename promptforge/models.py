"""
models.py — promptforge domain enums and shared schemas

Row shapes mirror the Supabase tables:
- projects, code_files, conversations, messages
- execution_sessions, execution_logs, execution_artifacts
- build_jobs, deployments, environments
- ai_models, system_prompts, user_billing
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    ERROR = "error"
    DEPLOYING = "deploying"
    ARCHIVED = "archived"


class SessionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class BuildStatus(str, Enum):
    QUEUED = "queued"
    BUILDING = "building"
    SUCCESS = "success"
    FAILED = "failed"


class DeploymentStatus(str, Enum):
    PENDING = "pending"
    DEPLOYING = "deploying"
    SUCCESS = "success"
    FAILED = "failed"


class ExecutionMode(str, Enum):
    EXECUTE = "execute"
    ANALYZE = "analyze"


class OperationType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RENAME = "rename"


class AIProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    MISTRAL = "mistral"
    LOCAL = "local"


class PromptCategory(str, Enum):
    SYSTEM = "system"
    CODING = "coding"
    ANALYSIS = "analysis"
    DEBUGGING = "debugging"
    OPTIMIZATION = "optimization"


class BillingStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    TRIAL = "trial"
    EXPIRED = "expired"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# =============================================================================
# FILE OPERATIONS
# =============================================================================


class FileOperation(BaseModel):
    """One file change requested by the model (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    type: OperationType
    file_path: str = Field(..., alias="filePath")
    content: Optional[str] = None
    new_path: Optional[str] = Field(None, alias="newPath")


# =============================================================================
# EXECUTION PIPELINE
# =============================================================================


class ExecutionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., min_length=1)
    project_id: Optional[str] = Field(None, alias="projectId")
    session_id: Optional[str] = Field(None, alias="sessionId")
    conversation_id: Optional[str] = Field(None, alias="conversationId")
    existing_files: Optional[List[Dict[str, Any]]] = Field(None, alias="existingFiles")
    mode: ExecutionMode = ExecutionMode.EXECUTE


class ExecutionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    operations: int
    execution_results: List[str] = Field(default_factory=list, alias="executionResults")
    session_id: Optional[str] = Field(None, alias="sessionId")
