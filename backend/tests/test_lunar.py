from __future__ import annotations

from datetime import date

from services.lunar import (
    can_chi_day,
    can_chi_year,
    julian_day,
    lunar_date,
    month_grid,
)


def test_julian_day_and_can_chi() -> None:
    jd = julian_day(1, 1, 2000)
    assert jd == 2451545
    assert can_chi_day(jd) == "Mậu Ngọ"
    assert can_chi_year(2026) == "Bính Ngọ"


def test_table_hit() -> None:
    tet = lunar_date(date(2026, 2, 17))
    assert (tet.day, tet.month, tet.year, tet.leap) == (1, 1, 2026, False)


def test_gap_is_filled_from_previous_anchor() -> None:
    d = lunar_date(date(2026, 2, 20))
    assert (d.day, d.month, d.year) == (4, 1, 2026)

    leap = lunar_date(date(2026, 8, 20))
    assert (leap.day, leap.month, leap.leap) == (9, 6, True)


def test_fill_rolls_month_and_year_forward() -> None:
    d = lunar_date(date(2027, 1, 20))   # 20 days after the last anchor (23/10)
    assert (d.day, d.month, d.year) == (13, 11, 2026)


def test_dates_before_first_anchor_count_backwards() -> None:
    d = lunar_date(date(2025, 12, 1))
    assert (d.day, d.month, d.year) == (12, 10, 2025)


def test_month_grid_padding_and_flags() -> None:
    jan = month_grid(2026, 1)
    assert jan.weekdays[0] == "CN"
    assert jan.cells[:4] == [None, None, None, None]   # 1 Jan 2026 is a Thursday
    assert len(jan.cells) == 4 + 31
    first = jan.cells[4]
    assert first.date == "2026-01-01"
    assert first.isHoliday is True
    assert first.lunarLabel == "13"

    feb = month_grid(2026, 2)
    assert feb.cells[0].isSunday is True
    tet = feb.cells[16]
    assert tet.date == "2026-02-17"
    assert tet.lunarLabel == "1/1"
    assert tet.isFirstOrFull is True


def test_month_grid_navigation_window() -> None:
    assert month_grid(2025, 12).prev is None
    assert month_grid(2025, 12).next == "2026-01"
    assert month_grid(2026, 12).next is None
    assert month_grid(2026, 6).prev == "2026-05"


def test_calendar_endpoints(client) -> None:
    r = client.get("/api/calendar/2026/2")
    assert r.status_code == 200
    assert r.json()["title"] == "Tháng 2 / 2026"

    day = client.get("/api/calendar/day/2026-09-02").json()
    assert day["isHoliday"] is True

    assert client.get("/api/calendar/day/2026-13-01").status_code == 400
    assert client.get("/api/calendar/2026/13").status_code == 422
