"""
ws_progress.py — promptforge WebSocket Progress Stream

Dashboard listens in real-time to execution sessions:
- step logs
- completed-step counter / status changes
"""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

ws_router = APIRouter(prefix="/ws", tags=["progress"])

connections: Dict[str, List[WebSocket]] = {}


async def broadcast(session_id: str, payload: dict) -> None:
    sockets = connections.get(session_id)
    if not sockets:
        return
    dead = []
    for ws in sockets:
        try:
            await ws.send_json(payload)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("dropping progress socket for %s: %s", session_id, exc)
            dead.append(ws)
    for ws in dead:
        sockets.remove(ws)


@ws_router.websocket("/sessions/{session_id}")
async def ws_session_progress(websocket: WebSocket, session_id: str):
    await websocket.accept()
    connections.setdefault(session_id, []).append(websocket)

    try:
        while True:
            # one-way push; keep reading so disconnects are noticed
            await websocket.receive_text()
    except WebSocketDisconnect:
        sockets = connections.get(session_id, [])
        if websocket in sockets:
            sockets.remove(websocket)
        if not sockets:
            connections.pop(session_id, None)
