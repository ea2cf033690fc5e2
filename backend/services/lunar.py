# backend/services/lunar.py
"""
Vietnamese lunar calendar for the 2026 wall-calendar view.

Uses a sparse, precomputed table of anchor dates; days between anchors are
filled by counting forward from the nearest earlier anchor with 30-day lunar
months. Accurate only near the anchors, which is all the view needs.
"""
from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from models.calendar_models import CalendarCell, CalendarMonth, LunarDay

CAN = ["Giáp", "Ất", "Bính", "Đinh", "Mậu", "Kỷ", "Canh", "Tân", "Nhâm", "Quý"]
CHI = ["Tý", "Sửu", "Dần", "Mão", "Thìn", "Tỵ", "Ngọ", "Mùi", "Thân", "Dậu", "Tuất", "Hợi"]

WEEKDAYS = ["CN", "T2", "T3", "T4", "T5", "T6", "T7"]   # Sunday first
MONTHS_VN = [
    "Tháng Giêng", "Tháng Hai", "Tháng Ba", "Tháng Tư", "Tháng Năm", "Tháng Sáu",
    "Tháng Bảy", "Tháng Tám", "Tháng Chín", "Tháng Mười", "Tháng Mười Một", "Tháng Chạp",
]

# navigation window (year, month) inclusive
FIRST_MONTH = (2025, 12)
LAST_MONTH = (2026, 12)

# (day, month, year, leap)
LUNAR_TABLE_2026: Dict[str, Tuple[int, int, int, bool]] = {
    "2026-01-01": (13, 11, 2025, False),
    "2026-01-10": (22, 11, 2025, False),
    "2026-01-19": (1, 12, 2025, False),
    "2026-01-20": (2, 12, 2025, False),
    "2026-01-31": (13, 12, 2025, False),
    "2026-02-01": (14, 12, 2025, False),
    "2026-02-16": (29, 12, 2025, False),
    "2026-02-17": (1, 1, 2026, False),   # Tết Bính Ngọ
    "2026-02-18": (2, 1, 2026, False),
    "2026-02-28": (12, 1, 2026, False),
    "2026-03-01": (13, 1, 2026, False),
    "2026-03-18": (1, 2, 2026, False),
    "2026-03-31": (14, 2, 2026, False),
    "2026-04-01": (15, 2, 2026, False),
    "2026-04-17": (1, 3, 2026, False),
    "2026-04-30": (14, 3, 2026, False),
    "2026-05-01": (15, 3, 2026, False),
    "2026-05-16": (1, 4, 2026, False),
    "2026-05-31": (16, 4, 2026, False),
    "2026-06-01": (17, 4, 2026, False),
    "2026-06-15": (1, 5, 2026, False),
    "2026-06-30": (16, 5, 2026, False),
    "2026-07-01": (17, 5, 2026, False),
    "2026-07-14": (1, 6, 2026, False),
    "2026-07-31": (18, 6, 2026, False),
    "2026-08-01": (19, 6, 2026, False),
    "2026-08-12": (1, 6, 2026, True),    # leap 6th month
    "2026-08-31": (20, 6, 2026, True),
    "2026-09-01": (21, 6, 2026, True),
    "2026-09-11": (1, 7, 2026, False),
    "2026-09-30": (20, 7, 2026, False),
    "2026-10-01": (21, 7, 2026, False),
    "2026-10-10": (1, 8, 2026, False),
    "2026-10-31": (22, 8, 2026, False),
    "2026-11-01": (23, 8, 2026, False),
    "2026-11-09": (1, 9, 2026, False),
    "2026-11-30": (22, 9, 2026, False),
    "2026-12-01": (23, 9, 2026, False),
    "2026-12-09": (1, 10, 2026, False),
    "2026-12-31": (23, 10, 2026, False),
}
_ANCHORS = sorted(LUNAR_TABLE_2026)

HOLIDAYS_2026 = {
    "2026-01-01",   # Tết Dương Lịch
    "2026-02-16",   # Giao thừa
    "2026-02-17", "2026-02-18", "2026-02-19", "2026-02-20", "2026-02-21", "2026-02-22",
    "2026-04-26",   # Giỗ tổ Hùng Vương
    "2026-04-30",   # Giải Phóng Miền Nam
    "2026-05-01",   # Quốc Tế Lao Động
    "2026-09-02", "2026-09-03",   # Quốc Khánh
}


# ───────── Can Chi ─────────
def julian_day(d: int, m: int, y: int) -> int:
    a = (14 - m) // 12
    year = y + 4800 - a
    month = m + 12 * a - 3
    return d + (153 * month + 2) // 5 + 365 * year + year // 4 - year // 100 + year // 400 - 32045


def can_chi_year(year: int) -> str:
    return f"{CAN[(year + 6) % 10]} {CHI[(year + 8) % 12]}"


def can_chi_month(month: int, year: int) -> str:
    # rough approximation, good enough for the view
    return f"{CAN[(year * 12 + month + 3) % 10]} {CHI[(month + 1) % 12]}"


def can_chi_day(jd: int) -> str:
    return f"{CAN[(jd + 9) % 10]} {CHI[(jd + 1) % 12]}"


# ───────── lookup ─────────
def lunar_date(d: date) -> LunarDay:
    key = d.isoformat()
    hit = LUNAR_TABLE_2026.get(key)
    if hit:
        day, month, year, leap = hit
        return LunarDay(day=day, month=month, year=year, leap=leap)

    prev = _ANCHORS[0]
    for anchor in _ANCHORS:
        if anchor <= key:
            prev = anchor
        else:
            break

    day, month, year, leap = LUNAR_TABLE_2026[prev]
    day += (d - date.fromisoformat(prev)).days

    while day > 30:
        day -= 30
        month += 1
        if month > 12:
            month, year = 1, year + 1
    # dates before the first anchor count backwards
    while day < 1:
        day += 30
        month -= 1
        if month < 1:
            month, year = 12, year - 1

    return LunarDay(day=day, month=month, year=year, leap=leap)


def is_holiday(d: date) -> bool:
    return d.isoformat() in HOLIDAYS_2026


def in_window(year: int, month: int) -> bool:
    return FIRST_MONTH <= (year, month) <= LAST_MONTH


def _shift(year: int, month: int, delta: int) -> Tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def day_cell(d: date) -> CalendarCell:
    lunar = lunar_date(d)
    jd = julian_day(d.day, d.month, d.year)
    return CalendarCell(
        date=d.isoformat(),
        day=d.day,
        lunar=lunar,
        lunarLabel=f"{lunar.day}/{lunar.month}" if lunar.day == 1 else str(lunar.day),
        isSunday=d.weekday() == 6,
        isHoliday=is_holiday(d),
        isFirstOrFull=lunar.day in (1, 15),
        canChiDay=can_chi_day(jd),
        canChiMonth=can_chi_month(lunar.month, lunar.year),
        canChiYear=can_chi_year(lunar.year),
    )


def month_grid(year: int, month: int) -> CalendarMonth:
    first = date(year, month, 1)
    last_day = calendar.monthrange(year, month)[1]
    lead = (first.weekday() + 1) % 7   # Sunday = column 0

    cells: List[Optional[CalendarCell]] = [None] * lead
    cells += [day_cell(first + timedelta(days=i)) for i in range(last_day)]

    prev = _shift(year, month, -1)
    nxt = _shift(year, month, 1)
    return CalendarMonth(
        year=year,
        month=month,
        title=f"Tháng {month} / {year}",
        weekdays=WEEKDAYS,
        cells=cells,
        prev=f"{prev[0]}-{prev[1]:02d}" if in_window(*prev) else None,
        next=f"{nxt[0]}-{nxt[1]:02d}" if in_window(*nxt) else None,
    )
