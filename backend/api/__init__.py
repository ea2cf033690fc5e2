# backend/api/__init__.py
"""
All REST routers under /api; the WebSocket router is mounted separately.
"""
from fastapi import APIRouter

# ── REST routers ─────────────────────────────────────
from .scan      import router as scan_router
from .stages    import router as stages_router
from .calendar  import router as calendar_router

# ── WebSocket router (no /api prefix) ────────────────
from .ws_router import router as ws_router

api_router = APIRouter(prefix="/api")

api_router.include_router(scan_router)
api_router.include_router(stages_router)
api_router.include_router(calendar_router)
