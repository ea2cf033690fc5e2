"""Scan-state REST router – snapshot, persistence status, export, station check"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from core.config import Settings
from core.deps import get_hub, get_settings
from core.hub import BroadcastHub
from models.scan_models import ScanCheckIn, ScanCheckOut
from services.scan_rules import check_scan
from services.spreadsheet import frame_to_csv, frame_to_xlsx, history_frame

router = APIRouter(tags=["scan"])


# ①  current snapshot --------------------------------------------
@router.get("/state")
def get_state(hub: BroadcastHub = Depends(get_hub)):
    return hub.store.snapshot()


# ②  disk mirror status ------------------------------------------
@router.get("/state/persistence")
def persistence_status(hub: BroadcastHub = Depends(get_hub)):
    writer = hub.store.writer
    if writer is None:
        return {"enabled": False}
    return {"enabled": True, **writer.status()}


# ③  export history -----------------------------------------------
@router.get("/history/export")
def export_history(
    format: str = Query("csv", pattern="^(csv|xlsx)$"),
    stage: Optional[int] = Query(None, ge=1),
    hub: BroadcastHub = Depends(get_hub),
    settings: Settings = Depends(get_settings),
):
    df = history_frame(hub.store.history, tz=settings.TIMEZONE, stage=stage)
    if df.empty:
        raise HTTPException(404, "no data")

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    if format == "xlsx":
        return Response(
            frame_to_xlsx(df),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f'attachment; filename="scan_history_{stamp}.xlsx"'},
        )
    return Response(
        frame_to_csv(df),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="scan_history_{stamp}.csv"'},
    )


# ④  station-side check (hub never calls this) --------------------
@router.post("/scan/check", response_model=ScanCheckOut)
def scan_check(payload: ScanCheckIn, hub: BroadcastHub = Depends(get_hub)):
    stage = hub.store.get_stage(payload.stage)
    if stage is None:
        raise HTTPException(404, f"Stage {payload.stage} not found")
    return check_scan(stage, hub.store.history, payload, hub.store.stage_employees)
