"""
WebSocket endpoint for live progress and wins events.

Auth (first match wins):
1. Authorization: Bearer <jwt> header, or ?token=<jwt>
2. X-Anon-Id header, or ?anon_id=<uuid4>

Events pushed to the client: {"type": <topic>, "payload": {...}}
- progress:update (the caller's own room)
- win:new, win:like (everyone)
"""

import json
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from dailyout.core.auth import resolve_user_id
from dailyout.core.errors import AppError
from dailyout.core.logging import log_event

router = APIRouter()


async def _authenticate(websocket: WebSocket, services) -> Optional[str]:
    authorization = websocket.headers.get("authorization")
    token = websocket.query_params.get("token")
    if not authorization and token:
        authorization = f"Bearer {token}"
    anon_id = websocket.headers.get("x-anon-id") or websocket.query_params.get("anon_id")
    try:
        return await run_in_threadpool(resolve_user_id, services, authorization, anon_id)
    except AppError:
        return None


@router.websocket("/ws")
async def progress_socket(websocket: WebSocket):
    services = websocket.app.state.services
    hub = services.hub
    request_id = websocket.headers.get("x-request-id") or str(uuid4())

    await websocket.accept()
    user_id = await _authenticate(websocket, services)
    if not user_id or hub is None:
        log_event("info", "ws.unauthorized", request_id=request_id, event_type="ws.unauthorized")
        await websocket.send_json({
            "type": "error",
            "code": "unauthorized",
            "message": "Missing or invalid authentication",
            "request_id": request_id,
        })
        await websocket.close(code=1008)
        return

    await hub.register(user_id, websocket)
    log_event("info", "ws.connected", request_id=request_id, user_id=user_id, event_type="ws.connected")
    await websocket.send_json({"type": "connected", "payload": {"user_id": user_id}})

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                continue
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong", "payload": {"ts": services.clock.now().isoformat()}})
    except WebSocketDisconnect:
        log_event("info", "ws.disconnected", request_id=request_id, user_id=user_id, event_type="ws.disconnected")
    finally:
        await hub.unregister(websocket)
