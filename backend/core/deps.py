# core/deps.py
"""
FastAPI dependencies: the hub is built in the app lifespan and lives on
app.state, so REST routes and the WebSocket route share one instance.
"""
from __future__ import annotations

from fastapi import HTTPException, Request, WebSocket, WebSocketException, status

from core.config import Settings
from core.hub import BroadcastHub


def get_hub(request: Request) -> BroadcastHub:
    hub = getattr(request.app.state, "hub", None)
    if hub is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Hub not initialised")
    return hub


def get_ws_hub(websocket: WebSocket) -> BroadcastHub:
    hub = getattr(websocket.app.state, "hub", None)
    if hub is None:
        raise WebSocketException(code=status.WS_1013_TRY_AGAIN_LATER, reason="Hub not initialised")
    return hub


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_ws_settings(websocket: WebSocket) -> Settings:
    return websocket.app.state.settings
