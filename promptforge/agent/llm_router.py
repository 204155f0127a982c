"""
llm_router.py — promptforge LLM Router

Purpose:
- Centralize ALL communication with the chat-completions provider
- Let executor, assistant, code generator and agent share routing
- Pick the configured model for each task
- Retry on transient failures
- Surface provider error messages
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from ..settings import Settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}


class LLMError(RuntimeError):
    pass


@dataclass
class LLMReply:
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    # pricing key; providers echo dated snapshot names in `model`
    requested_model: str = ""

    @property
    def total_tokens(self) -> int:
        return int(self.usage.get("total_tokens") or 0)


class LLMRouter:

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport
        self.max_retries = max(1, settings.LLM_MAX_RETRIES)
        self.timeout = settings.LLM_TIMEOUT
        self.backoff = settings.LLM_RETRY_BACKOFF
        self.model_map = {
            "execute": settings.LLM_MODEL_EXECUTE,
            "analyze": settings.LLM_MODEL_EXECUTE,
            "chat": settings.LLM_MODEL_CHAT,
            "codegen": settings.LLM_MODEL_CODEGEN,
            "filename": settings.LLM_MODEL_CODEGEN,
            "agent": settings.LLM_MODEL_AGENT,
        }

    @property
    def url(self) -> str:
        return self.settings.LLM_BASE_URL.rstrip("/") + "/chat/completions"

    def model_for(self, mode: str) -> str:
        if mode not in self.model_map:
            raise ValueError(f"Unknown LLM mode: {mode}")
        return self.model_map[mode]

    async def complete(
        self,
        mode: str,
        system: str,
        user: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        json_mode: bool = False,
        model: Optional[str] = None,
    ) -> LLMReply:
        if not self.settings.LLM_API_KEY:
            raise LLMError("LLM API key not configured")

        model = model or self.model_for(mode)

        payload: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        headers = {
            "Authorization": f"Bearer {self.settings.LLM_API_KEY}",
            "Content-Type": "application/json",
        }

        last_error: Optional[str] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    resp = await client.post(self.url, json=payload, headers=headers)
            except httpx.TransportError as exc:
                last_error = str(exc) or exc.__class__.__name__
                logger.warning("LLM %s attempt %s/%s failed: %s", mode, attempt, self.max_retries, last_error)
                await self._sleep(attempt)
                continue

            if resp.status_code in RETRYABLE_STATUS:
                last_error = self._error_message(resp)
                logger.warning(
                    "LLM %s attempt %s/%s got %s: %s", mode, attempt, self.max_retries, resp.status_code, last_error
                )
                await self._sleep(attempt)
                continue

            if resp.status_code >= 400:
                raise LLMError(f"LLM API error: {self._error_message(resp)}")

            data = resp.json()
            try:
                content = data["choices"][0]["message"]["content"] or ""
            except (KeyError, IndexError, TypeError):
                raise LLMError("LLM API error: malformed completion payload")

            return LLMReply(
                content=content,
                model=data.get("model") or model,
                usage=data.get("usage") or {},
                requested_model=model,
            )

        raise LLMError(f"LLM request failed after {self.max_retries} attempts: {last_error}")

    async def _sleep(self, attempt: int) -> None:
        if attempt < self.max_retries and self.backoff > 0:
            await asyncio.sleep(self.backoff * attempt)

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text or f"HTTP {resp.status_code}"
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict) and err.get("message"):
                return err["message"]
            if isinstance(err, str):
                return err
        return "Unknown error"
