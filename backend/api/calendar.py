# api/calendar.py
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException, Path

from models.calendar_models import CalendarCell, CalendarMonth
from services.lunar import day_cell, month_grid

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/day/{day}", response_model=CalendarCell)
def calendar_day(day: str):
    try:
        d = date.fromisoformat(day)
    except ValueError:
        raise HTTPException(400, f"Bad date format: {day}, need YYYY-MM-DD")
    return day_cell(d)


@router.get("/{year}/{month}", response_model=CalendarMonth)
def calendar_month(
    year: int = Path(..., ge=1900, le=2100),
    month: int = Path(..., ge=1, le=12),
):
    return month_grid(year, month)
