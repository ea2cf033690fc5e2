# core/hub.py
"""
Scan-station broadcast hub.

One hub per process. It owns the StateStore and a single asyncio.Lock:
every connect (register + init_data) and every mutation (+ its broadcast)
runs under that lock, so events are applied in arrival order and a new
station never sees a snapshot that a concurrent broadcast has overtaken.

Broadcasts always carry the full collection, never a delta.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import WebSocket
from pydantic import TypeAdapter, ValidationError

from core.state_store import StateStore
from core.ws_manager import ConnectionManager
from models.scan_models import EmployeeAssignment, ScanRecord, Stage, ensure_size8

logger = logging.getLogger("scan_hub")

# ── event names on the wire ───────────────────────────────────────
INIT_DATA = "init_data"
SERVER_UPDATE_HISTORY = "server_update_history"
SERVER_UPDATE_STAGES = "server_update_stages"
SERVER_UPDATE_EMPLOYEES = "server_update_employees"
ERROR = "error"

CLIENT_ADD_SCAN = "client_add_scan"
CLIENT_UPDATE_STAGES = "client_update_stages"
CLIENT_UPDATE_EMPLOYEE = "client_update_employee"
CLIENT_RESET_DATA = "client_reset_data"

_stage_list = TypeAdapter(List[Stage])


def event(name: str, data: Any = None) -> Dict[str, Any]:
    return {"type": name, "data": data}


class HubError(Exception):
    """Inbound frame rejected; reported to the sender only."""


class BroadcastHub:
    def __init__(self, store: StateStore, manager: Optional[ConnectionManager] = None):
        self.store = store
        self.manager = manager or ConnectionManager()
        self._lock = asyncio.Lock()
        self._handlers: Dict[str, Callable[[Any], Awaitable[None]]] = {
            CLIENT_ADD_SCAN: self.add_scan,
            CLIENT_UPDATE_STAGES: self.update_stages,
            CLIENT_UPDATE_EMPLOYEE: self.update_employee,
            CLIENT_RESET_DATA: self.reset_data,
        }

    # ───────── connection lifecycle ─────────
    async def connect(self, ws: WebSocket, station: Optional[str] = None) -> bool:
        async with self._lock:
            await self.manager.connect(ws, station)
            return await self.manager.send(ws, event(INIT_DATA, self.store.snapshot()))

    async def disconnect(self, ws: WebSocket) -> None:
        await self.manager.disconnect(ws)

    # ───────── inbound dispatch ─────────
    async def handle(self, ws: WebSocket, message: Any) -> None:
        if not isinstance(message, dict):
            await self._reject(ws, "Message must be a JSON object")
            return

        mtype = message.get("type")
        handler = self._handlers.get(mtype)
        if handler is None:
            await self._reject(ws, f"Unknown message type: {mtype}")
            return

        try:
            await handler(message.get("data"))
        except (ValidationError, HubError, ValueError) as e:
            await self._reject(ws, f"Failed to process {mtype}: {e}")

    async def _reject(self, ws: WebSocket, text: str) -> None:
        logger.warning("Rejected frame from %s: %s", self.manager.station_of(ws), text)
        await self.manager.send(ws, event(ERROR, {"message": text}))

    # ───────── mutations (each: store op → full broadcast) ─────────
    async def add_scan(self, data: Any) -> None:
        record = data if isinstance(data, ScanRecord) else ScanRecord.model_validate(data)
        async with self._lock:
            self.store.apply_scan(record)
            await self.manager.broadcast(event(SERVER_UPDATE_HISTORY, self.store.history_wire()))

    async def update_stages(self, data: Any) -> None:
        stages = _stage_list.validate_python(data)
        async with self._lock:
            self.store.replace_stages(stages)
            await self.manager.broadcast(event(SERVER_UPDATE_STAGES, self.store.stages_wire()))

    async def update_employee(self, data: Any) -> None:
        assignment = data if isinstance(data, EmployeeAssignment) else EmployeeAssignment.model_validate(data)
        async with self._lock:
            self.store.set_employee(assignment.stageId, assignment.employeeId)
            await self.manager.broadcast(event(SERVER_UPDATE_EMPLOYEES, self.store.employees_wire()))

    async def reset_data(self, data: Any = None) -> None:
        async with self._lock:
            self.store.reset()
            await self.manager.broadcast(event(INIT_DATA, self.store.snapshot()))

    async def set_field_whitelist(self, stage_id: int, index: int, codes: str) -> Stage:
        """Replace one auxiliary-field whitelist of a stage and broadcast the stages."""
        async with self._lock:
            stage = self.store.get_stage(stage_id)
            if stage is None:
                raise HubError(f"Stage {stage_id} not found")
            lists = ensure_size8(stage.additionalFieldValidationLists)
            lists[index] = codes
            updated = stage.normalized().model_copy(update={"additionalFieldValidationLists": lists})
            self.store.replace_stages([updated if s.id == stage_id else s for s in self.store.stages])
            await self.manager.broadcast(event(SERVER_UPDATE_STAGES, self.store.stages_wire()))
            return updated
