# core/ws_manager.py
import asyncio
import logging
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger("ws_manager")

class ConnectionManager:
    def __init__(self, send_timeout: float = 5.0):
        self.active: list[WebSocket] = []
        self.stations: dict[int, str] = {}
        self.send_timeout = send_timeout
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, station: str | None = None) -> bool:
        """
        Registration only; websocket.accept() is the router's job.
        """
        async with self._lock:
            if websocket not in self.active:
                self.active.append(websocket)
            self.stations[id(websocket)] = station or "unknown"
        logger.info("🔗 Station connected: %s. Total: %d", station or "unknown", len(self.active))
        return True

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            if websocket in self.active:
                self.active.remove(websocket)
            station = self.stations.pop(id(websocket), None)
        if station is not None:
            logger.info("❌ Station disconnected: %s. Remaining: %d", station, len(self.active))

    def station_of(self, websocket: WebSocket) -> str:
        return self.stations.get(id(websocket), "unknown")

    async def send(self, ws: WebSocket, message: dict[str, Any]) -> bool:
        if ws.client_state != WebSocketState.CONNECTED:
            return False
        try:
            await asyncio.wait_for(ws.send_json(message), timeout=self.send_timeout)
            return True
        except Exception as e:
            logger.warning("⚠️ send_json to %s failed; removing socket: %s", self.station_of(ws), e)
            await self.disconnect(ws)
            return False

    async def broadcast(self, message: dict[str, Any]) -> int:
        async with self._lock:
            sockets = list(self.active)
        delivered = 0
        for ws in sockets:
            if await self.send(ws, message):
                delivered += 1
        return delivered
