# api/stages.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Path, UploadFile

from core.deps import get_hub
from core.hub import BroadcastHub, HubError
from models.scan_models import FIELD_SLOTS
from services.spreadsheet import SpreadsheetError, read_first_column_codes

logger = logging.getLogger("api.stages")
router = APIRouter(tags=["stages"])


@router.get("/stages")
def list_stages(hub: BroadcastHub = Depends(get_hub)):
    return hub.store.stages_wire()


@router.post("/stages/{stage_id}/fields/{index}/whitelist")
async def upload_field_whitelist(
    stage_id: int,
    index: int = Path(..., ge=0, lt=FIELD_SLOTS),
    file: UploadFile = File(...),
    hub: BroadcastHub = Depends(get_hub),
):
    """
    Load the valid codes of one auxiliary field from column A of an
    .xlsx/.xls/.csv file, then broadcast the updated stages.
    """
    content = await file.read()
    try:
        codes = read_first_column_codes(content, file.filename or "")
    except SpreadsheetError as e:
        raise HTTPException(400, str(e))
    if not codes:
        raise HTTPException(400, "File has no data in column A")

    try:
        stage = await hub.set_field_whitelist(stage_id, index, " ".join(codes))
    except HubError as e:
        raise HTTPException(404, str(e))

    logger.info("Loaded %d codes into stage %s field %d", len(codes), stage_id, index + 1)
    return {"status": "success", "count": len(codes), "stage": stage.to_wire()}


@router.delete("/stages/{stage_id}/fields/{index}/whitelist")
async def clear_field_whitelist(
    stage_id: int,
    index: int = Path(..., ge=0, lt=FIELD_SLOTS),
    hub: BroadcastHub = Depends(get_hub),
):
    try:
        stage = await hub.set_field_whitelist(stage_id, index, "")
    except HubError as e:
        raise HTTPException(404, str(e))
    return {"status": "success", "stage": stage.to_wire()}
