"""
db.py — Supabase client wiring

Every module talks to Postgres through the supabase-py query builder.
The client is created once and handed out as a FastAPI dependency so
routes, pipelines and the CLI share it (and tests can swap it).
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from supabase import Client, create_client

from .settings import get_settings


@lru_cache(maxsize=1)
def get_db() -> Client:
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in the environment."
        )
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def first_row(resp) -> Optional[Dict[str, Any]]:
    """Return the first row of a query response, or None."""
    if resp is None:
        return None
    data = resp.data
    if not data:
        return None
    if isinstance(data, list):
        return data[0]
    return data


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()
