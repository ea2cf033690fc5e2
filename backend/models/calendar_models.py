# models/calendar_models.py
from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel


class LunarDay(BaseModel):
    day: int
    month: int
    year: int
    leap: bool = False


class CalendarCell(BaseModel):
    date: str            # YYYY-MM-DD (solar)
    day: int
    lunar: LunarDay
    lunarLabel: str      # "1/6" on the first of a lunar month, else "17"
    isSunday: bool
    isHoliday: bool
    isFirstOrFull: bool
    canChiDay: str
    canChiMonth: str
    canChiYear: str


class CalendarMonth(BaseModel):
    year: int
    month: int
    title: str
    weekdays: List[str]
    cells: List[Optional[CalendarCell]]   # None = padding before day 1
    prev: Optional[str] = None            # "YYYY-MM" or None outside the window
    next: Optional[str] = None
