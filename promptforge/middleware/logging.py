"""
Request logging: one JSON line per request, correlated by x-request-id.

Routes put what they know about the caller on `request.state`
(`user_id` from the auth dependency, `session_id` from the execution
endpoints); it is folded into the line so a session's HTTP calls can be
found next to its execution_logs rows.
"""

import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("promptforge.requests")

STATE_FIELDS = ("user_id", "session_id")


def _level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class JsonLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = rid
        start = time.perf_counter()
        resp = await call_next(request)

        entry = {
            "rid": rid,
            "method": request.method,
            "path": request.url.path,
            "status": resp.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        }
        for name in STATE_FIELDS:
            value = getattr(request.state, name, None)
            if value is not None:
                entry[name] = str(value)

        logger.log(_level(resp.status_code), json.dumps(entry))
        resp.headers["x-request-id"] = rid
        return resp
