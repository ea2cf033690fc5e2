# backend/api/ws_router.py
"""
Scan-station WebSocket route
- accept() first, then register with the hub (which sends init_data)
- every frame is {"type": ..., "data": ...}; "ping" text → "pong"
- idle receive timeout → "heartbeat" text frame
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from core.config import Settings
from core.deps import get_ws_hub, get_ws_settings
from core.hub import BroadcastHub, ERROR, event

logger = logging.getLogger("api.ws_router")
router = APIRouter()


# ------------------ safe send helpers ------------------
def _is_connected(ws: WebSocket) -> bool:
    return (
        ws.client_state == WebSocketState.CONNECTED
        and ws.application_state == WebSocketState.CONNECTED
    )


async def safe_send_text(ws: WebSocket, text: str, timeout: float = 5.0) -> bool:
    try:
        if not _is_connected(ws):
            return False
        await asyncio.wait_for(ws.send_text(text), timeout=timeout)
        return True
    except Exception:
        return False


# ------------------ Scan WS ------------------
@router.websocket("/ws/scan")
async def websocket_scan(
    websocket: WebSocket,
    station: Optional[str] = None,
    hub: BroadcastHub = Depends(get_ws_hub),
    settings: Settings = Depends(get_ws_settings),
):
    try:
        await websocket.accept()
    except RuntimeError as e:
        if "accept" not in str(e).lower():
            logger.exception("scan accept() failed")
            return

    try:
        if not await hub.connect(websocket, station):
            return

        while _is_connected(websocket):
            try:
                raw = await asyncio.wait_for(websocket.receive_text(), timeout=settings.WS_RECEIVE_TIMEOUT)
            except asyncio.TimeoutError:
                await safe_send_text(websocket, "heartbeat", settings.WS_SEND_TIMEOUT)
                continue
            except WebSocketDisconnect:
                break
            except Exception as e:
                logger.warning("receive failed for station %s: %s", station or "unknown", e)
                break

            if raw == "ping":
                await safe_send_text(websocket, "pong", settings.WS_SEND_TIMEOUT)
                continue

            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await hub.manager.send(websocket, event(ERROR, {"message": "Invalid JSON"}))
                continue

            await hub.handle(websocket, msg)
    finally:
        await hub.disconnect(websocket)
