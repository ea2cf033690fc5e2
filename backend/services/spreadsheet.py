# backend/services/spreadsheet.py
"""Whitelist import (column A of the first sheet) and history export."""
from __future__ import annotations

from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, List, Optional

import pandas as pd
import pytz

from models.scan_models import FIELD_SLOTS, ScanRecord

SPREADSHEET_SUFFIXES = {".xlsx", ".xls", ".csv"}

EXPORT_COLUMNS = [
    "STT", "Time", "Stage", "Product Code", "Model", "Model Name",
    "Employee", "Status", "Measurement", "Note",
] + [f"Field {i + 1}" for i in range(FIELD_SLOTS)]


class SpreadsheetError(ValueError):
    pass


# ─────────────────────────── import ───────────────────────────
def read_first_column_codes(content: bytes, filename: str) -> List[str]:
    """Column A of the first worksheet, trimmed, blanks dropped, order kept."""
    suffix = Path(filename or "").suffix.lower()
    if suffix not in SPREADSHEET_SUFFIXES:
        raise SpreadsheetError(f"Unsupported file type: {suffix or filename}")

    try:
        if suffix == ".csv":
            df = pd.read_csv(BytesIO(content), header=None, usecols=[0], dtype=str,
                             keep_default_na=False, skip_blank_lines=True)
        else:
            df = pd.read_excel(BytesIO(content), sheet_name=0, header=None, usecols=[0], dtype=str)
    except pd.errors.EmptyDataError:
        return []
    except Exception as e:
        raise SpreadsheetError(f"Cannot read spreadsheet: {e}") from e

    if df.empty:
        return []
    return [str(v).strip() for v in df.iloc[:, 0].dropna() if str(v).strip()]


# ─────────────────────────── export ───────────────────────────
def _local_time(ts: Any, tz: str) -> Any:
    if not isinstance(ts, str):
        return _cell(ts)
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return ts
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(pytz.timezone(tz)).strftime("%Y-%m-%d %H:%M:%S")


def _cell(value: Any) -> Any:
    return "" if value is None else value


def history_frame(records: Iterable[ScanRecord], tz: str = "UTC", stage: Optional[int] = None) -> pd.DataFrame:
    rows = []
    for r in records:
        if stage is not None and str(r.stage) != str(stage):
            continue
        extra = [_cell(v) for v in list(r.additionalValues or [])[:FIELD_SLOTS]]
        extra += [""] * (FIELD_SLOTS - len(extra))
        rows.append(
            [
                _cell(r.stt),
                _local_time(r.timestamp, tz),
                _cell(r.stage),
                _cell(r.productCode),
                _cell(r.model),
                _cell(r.modelName),
                _cell(r.employeeId),
                str(_cell(r.status)).upper(),
                _cell(r.measurement),
                _cell(r.note),
                *extra,
            ]
        )
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def frame_to_csv(df: pd.DataFrame) -> bytes:
    # BOM so Excel opens Vietnamese text correctly
    return df.to_csv(index=False).encode("utf-8-sig")


def frame_to_xlsx(df: pd.DataFrame, sheet_name: str = "Scan History") -> bytes:
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as w:
        df.to_excel(w, index=False, sheet_name=sheet_name)
    return buf.getvalue()
