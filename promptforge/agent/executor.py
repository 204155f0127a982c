"""
executor.py — promptforge AI File Executor

prompt -> LLM (JSON operations) -> validate -> apply to code_files

Progress contract with the dashboard:
- step 0       "Starting {mode} mode execution"
- step 1..N    one log row per operation, completed_steps = n after each
- step -1      "Execution failed: ..." and the session goes to `failed`

A failure aborts the remaining operations. Operations applied before the
failure stay applied and `completed_steps` keeps the count reached.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

from ..db import first_row
from ..models import (
    ExecutionMode,
    ExecutionRequest,
    ExecutionResult,
    FileOperation,
    LogLevel,
    MessageRole,
    OperationType,
    PromptCategory,
    SessionStatus,
)
from ..monitor_events import ExecutionMonitor
from ..settings import Settings
from .generator import CodeFileStore, Generator
from .llm_router import LLMRouter
from .operations import OperationValidator, parse_execution_payload
from .prompts import ANALYZE_PROMPT, EXECUTE_PROMPT, PromptLibrary, render_context
from .usage import UsageTracker

logger = logging.getLogger(__name__)


class FileExecutor:

    def __init__(
        self,
        db: Client,
        llm: LLMRouter,
        settings: Settings,
        monitor: Optional[ExecutionMonitor] = None,
        usage: Optional[UsageTracker] = None,
    ):
        self.db = db
        self.llm = llm
        self.settings = settings
        self.monitor = monitor or ExecutionMonitor(db)
        self.usage = usage or UsageTracker(db, settings.DEFAULT_MONTHLY_LIMIT)
        self.store = CodeFileStore(db)
        self.generator = Generator(self.store)
        self.validator = OperationValidator(settings.MAX_OPERATIONS)
        self.prompts = PromptLibrary(db)

    # ------------------------------------------------------------------
    # rows
    # ------------------------------------------------------------------

    def create_session(self, project_id: str, prompt: str, conversation_id: Optional[str] = None) -> str:
        resp = (
            self.db.table("execution_sessions")
            .insert(
                {
                    "project_id": project_id,
                    "conversation_id": conversation_id,
                    "prompt": prompt,
                    "status": SessionStatus.RUNNING.value,
                    "total_steps": 0,
                    "completed_steps": 0,
                }
            )
            .execute()
        )
        return first_row(resp)["id"]

    def _store_message(self, conversation_id: Optional[str], role: MessageRole, content: str, metadata: Dict[str, Any]) -> None:
        if not conversation_id:
            return
        self.db.table("messages").insert(
            {
                "conversation_id": conversation_id,
                "role": role.value,
                "content": content,
                "metadata": metadata,
            }
        ).execute()

    def _store_artifacts(self, session_id: str, operations: List[FileOperation]) -> None:
        for op in operations:
            if op.type not in (OperationType.CREATE, OperationType.UPDATE):
                continue
            self.db.table("execution_artifacts").insert(
                {
                    "session_id": session_id,
                    "artifact_type": "code_file",
                    "file_path": op.file_path,
                    "content": op.content or "",
                    "metadata": {"operation_type": op.type.value},
                }
            ).execute()

    # ------------------------------------------------------------------
    # prompt
    # ------------------------------------------------------------------

    def _file_context(self, request: ExecutionRequest) -> List[Any]:
        if request.existing_files is not None:
            return request.existing_files
        if request.project_id:
            return self.store.context(request.project_id, self.settings.FILE_CONTEXT_CHARS)
        return []

    def _system_prompt(self, mode: ExecutionMode, files: List[Any]) -> str:
        context = render_context(files)
        if mode == ExecutionMode.EXECUTE:
            return self.prompts.resolve(PromptCategory.CODING, EXECUTE_PROMPT, context)
        return self.prompts.resolve(PromptCategory.ANALYSIS, ANALYZE_PROMPT, context)

    # ------------------------------------------------------------------
    # pipeline
    # ------------------------------------------------------------------

    async def execute(self, request: ExecutionRequest, user_id: Optional[str] = None) -> ExecutionResult:
        mode = request.mode
        if mode == ExecutionMode.EXECUTE and not request.project_id:
            raise ValueError("projectId is required in execute mode")

        if user_id:
            self.usage.check(user_id)

        session_id = request.session_id
        if mode == ExecutionMode.EXECUTE and not session_id:
            session_id = self.create_session(request.project_id, request.prompt, request.conversation_id)

        self._store_message(
            request.conversation_id,
            MessageRole.USER,
            request.prompt,
            {
                "mode": "file_execute" if mode == ExecutionMode.EXECUTE else "analyze",
                "session_id": session_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

        logger.info(
            "executor called: mode=%s project=%s session=%s prompt=%.100s",
            mode.value, request.project_id, session_id, request.prompt,
        )

        completed = 0
        operations: List[FileOperation] = []
        results: List[str] = []

        try:
            await self.monitor.log_step(session_id, 0, f"Starting {mode.value} mode execution")

            system = self._system_prompt(mode, self._file_context(request))
            reply = await self.llm.complete(
                mode.value,
                system,
                request.prompt,
                temperature=0.3 if mode == ExecutionMode.EXECUTE else 0.7,
                max_tokens=4000,
                json_mode=mode == ExecutionMode.EXECUTE,
            )
            self.usage.record(user_id, reply.requested_model, reply.usage)

            if mode == ExecutionMode.EXECUTE:
                payload = parse_execution_payload(reply.content)
                if not payload.structured:
                    logger.warning("model returned unstructured text for session %s", session_id)
                operations = self.validator.validate(payload.operations)
                response = payload.response

                if operations:
                    logger.info("executing %d file operations", len(operations))
                    self.monitor.set_total_steps(session_id, len(operations))

                    for step, op in enumerate(operations, 1):
                        await self.monitor.log_step(
                            session_id, step, f"Executing {op.type.value} operation on {op.file_path}"
                        )
                        try:
                            results.append(self.generator.apply(request.project_id, op))
                        except Exception as exc:
                            await self.monitor.log_step(
                                session_id,
                                step,
                                f"Error in {op.type.value} operation: {exc}",
                                LogLevel.ERROR.value,
                                {"error": str(exc)},
                            )
                            raise
                        completed = step
                        await self.monitor.update_progress(session_id, completed)

                    await self.monitor.update_progress(session_id, len(operations), SessionStatus.COMPLETED.value)
                    self._store_artifacts(session_id, operations)
                else:
                    logger.info("execute mode but no operations generated")
                    await self.monitor.update_progress(session_id, 1, SessionStatus.COMPLETED.value)
            else:
                response = reply.content
                await self.monitor.update_progress(session_id, 1, SessionStatus.COMPLETED.value)

        except Exception as exc:
            logger.exception("execution failed for session %s", session_id)
            await self.monitor.log_step(session_id, -1, f"Execution failed: {exc}", LogLevel.ERROR.value)
            await self.monitor.update_progress(session_id, completed, SessionStatus.FAILED.value, str(exc))
            raise

        self._store_message(
            request.conversation_id,
            MessageRole.ASSISTANT,
            response,
            {
                "execution_mode": mode.value,
                "operations_count": len(operations),
                "execution_results": results,
            },
        )

        return ExecutionResult(
            response=response,
            operations=len(operations),
            execution_results=results,
            session_id=session_id,
        )
