"""
usage.py — promptforge AI usage billing

Every LLM call is priced from the `ai_models` table and added to the
caller's `user_billing.current_usage`, so the dashboard can show usage
against the plan's monthly limit.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from supabase import Client

from ..db import first_row, utcnow
from ..models import BillingStatus

logger = logging.getLogger(__name__)


class UsageLimitExceeded(RuntimeError):
    pass


class UsageTracker:

    def __init__(self, db: Client, default_limit: float = 10.0):
        self.db = db
        self.default_limit = default_limit

    def account(self, user_id: str) -> Optional[Dict[str, Any]]:
        resp = (
            self.db.table("user_billing")
            .select("*")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        return first_row(resp)

    def ensure_account(self, user_id: str) -> Dict[str, Any]:
        row = self.account(user_id)
        if row:
            return row
        resp = (
            self.db.table("user_billing")
            .insert(
                {
                    "user_id": str(user_id),
                    "plan_name": "free",
                    "status": BillingStatus.TRIAL.value,
                    "monthly_limit": self.default_limit,
                    "current_usage": 0.0,
                }
            )
            .execute()
        )
        return first_row(resp)

    def check(self, user_id: str) -> None:
        row = self.ensure_account(user_id)
        status = row.get("status")
        if status in (BillingStatus.SUSPENDED.value, BillingStatus.EXPIRED.value):
            raise UsageLimitExceeded(f"Billing account is {status}")

        used = float(row.get("current_usage") or 0)
        limit = float(row.get("monthly_limit") or 0)
        if used >= limit:
            raise UsageLimitExceeded(f"Monthly usage limit reached ({used:.2f}/{limit:.2f})")

    def price(self, model_name: str, usage: Dict[str, int]) -> float:
        resp = (
            self.db.table("ai_models")
            .select("cost_per_input_token,cost_per_output_token")
            .eq("model_name", model_name)
            .limit(1)
            .execute()
        )
        row = first_row(resp)
        if not row:
            return 0.0
        prompt_tokens = int(usage.get("prompt_tokens") or 0)
        completion_tokens = int(usage.get("completion_tokens") or 0)
        return (
            prompt_tokens * float(row.get("cost_per_input_token") or 0)
            + completion_tokens * float(row.get("cost_per_output_token") or 0)
        )

    def record(self, user_id: Optional[str], model_name: str, usage: Dict[str, int]) -> float:
        if not user_id:
            return 0.0
        cost = self.price(model_name, usage or {})
        if cost <= 0:
            return 0.0

        row = self.ensure_account(user_id)
        new_total = float(row.get("current_usage") or 0) + cost
        self.db.table("user_billing").update(
            {"current_usage": new_total, "updated_at": utcnow()}
        ).eq("user_id", str(user_id)).execute()

        logger.info("user %s spent %.6f on %s (total %.4f)", user_id, cost, model_name, new_total)
        return cost
