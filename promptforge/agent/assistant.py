"""
assistant.py — promptforge conversational & generative helpers

- chat:           coding-assistant reply, persisted to `messages`
- generate_code:  single-file code + suggested filename
- run_autonomous: multi-file task; every returned file becomes a
                  new `code_files` row
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from ..models import MessageRole, PromptCategory
from ..settings import Settings
from .generator import CodeFileStore
from .llm_router import LLMRouter
from .operations import check_path, extract_json, strip_code_fences
from .prompts import (
    AGENT_PROMPT,
    CHAT_PROMPT,
    CODEGEN_PROMPT,
    FILENAME_PROMPT,
    TECH_STACK,
    PromptLibrary,
    render_context,
)
from .usage import UsageTracker

logger = logging.getLogger(__name__)

AGENT_PREVIEW_CHARS = 200
UNPARSED_AGENT_RESULT = "AI provided response but couldn't parse structured output"


class Assistant:

    def __init__(
        self,
        db: Client,
        llm: LLMRouter,
        settings: Settings,
        usage: Optional[UsageTracker] = None,
    ):
        self.db = db
        self.llm = llm
        self.settings = settings
        self.usage = usage or UsageTracker(db, settings.DEFAULT_MONTHLY_LIMIT)
        self.store = CodeFileStore(db)
        self.prompts = PromptLibrary(db)

    async def chat(
        self,
        message: str,
        conversation_id: str,
        project_files: Optional[List[Any]] = None,
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        if user_id:
            self.usage.check(user_id)

        system = self.prompts.resolve(PromptCategory.SYSTEM, CHAT_PROMPT, render_context(project_files))
        reply = await self.llm.complete("chat", system, message, temperature=0.7, max_tokens=2000, model=model)
        self.usage.record(user_id, reply.requested_model, reply.usage)

        self.db.table("messages").insert(
            {
                "conversation_id": conversation_id,
                "role": MessageRole.ASSISTANT.value,
                "content": reply.content,
                "metadata": {"model": reply.model, "tokens_used": reply.total_tokens},
            }
        ).execute()

        return {"response": reply.content, "model": reply.model, "tokens_used": reply.total_tokens}

    async def generate_code(
        self,
        prompt: str,
        file_type: str = "tsx",
        existing_files: Optional[List[Any]] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, str]:
        if user_id:
            self.usage.check(user_id)

        system = CODEGEN_PROMPT.format(
            stack=TECH_STACK, file_type=file_type, context=render_context(existing_files) if existing_files else "None"
        )
        code_reply = await self.llm.complete("codegen", system, prompt, temperature=0.3, max_tokens=3000)
        self.usage.record(user_id, code_reply.requested_model, code_reply.usage)

        name_reply = await self.llm.complete(
            "filename", FILENAME_PROMPT, f"Generate filename for: {prompt}", temperature=0.1, max_tokens=50
        )
        self.usage.record(user_id, name_reply.requested_model, name_reply.usage)

        return {
            "code": strip_code_fences(code_reply.content),
            "suggested_filename": name_reply.content.strip().strip("`\"'").strip(),
        }

    async def run_autonomous(
        self,
        project_id: str,
        task: str,
        task_type: str = "feature",
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        if user_id:
            self.usage.check(user_id)

        previews = [
            {"path": path, "content": content[:AGENT_PREVIEW_CHARS] + "..."}
            for path, content in self.store.tree(project_id).items()
        ]
        system = AGENT_PROMPT.format(
            project_id=project_id, task_type=task_type, context=render_context(previews) if previews else "No files"
        )
        user = (
            f"Task: {task}\n\n"
            "Create a complete implementation for this task. Consider all necessary files, "
            "components, hooks, and dependencies."
        )
        reply = await self.llm.complete("agent", system, user, temperature=0.3, max_tokens=4000)
        self.usage.record(user_id, reply.requested_model, reply.usage)

        parsed = extract_json(reply.content)
        if not isinstance(parsed, dict):
            parsed = {
                "result": UNPARSED_AGENT_RESULT,
                "filesCreated": [],
                "dependenciesAdded": [],
                "code": {},
                "instructions": reply.content,
            }

        files_created: List[str] = []
        code = parsed.get("code")
        if isinstance(code, dict):
            for filename, content in code.items():
                problem = check_path(filename)
                if problem or not isinstance(content, str):
                    logger.warning("skipping agent file %r: %s", filename, problem or "content is not text")
                    continue
                try:
                    row = self.store.insert(project_id, filename, content)
                except Exception as exc:
                    logger.error("error creating file %s: %s", filename, exc)
                    continue
                if row:
                    files_created.append(filename)

        return {
            "result": parsed.get("result") or "Task completed",
            "filesCreated": files_created,
            "dependenciesAdded": parsed.get("dependenciesAdded") or [],
            "instructions": parsed.get("instructions") or "",
        }
