# backend/services/scan_rules.py
"""
Station-side scan checks.

The hub never calls these: it trusts every record it receives. Stations may
ask POST /api/scan/check before sending client_add_scan.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from models.scan_models import ScanCheckIn, ScanCheckOut, ScanRecord, Stage, ValidationRule, ensure_size8

_TOKEN_SPLIT = re.compile(r"[\s,]+")


def split_tokens(value: str) -> List[str]:
    return [t for t in _TOKEN_SPLIT.split(value or "") if t]


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _to_number(text: str) -> Optional[float]:
    try:
        return float(text.strip().replace(",", "."))
    except (ValueError, AttributeError):
        return None


def rule_passes(rule: ValidationRule, code: str) -> bool:
    tokens = split_tokens(rule.value)
    if rule.type == "contains":
        return any(t in code for t in tokens) if tokens else True
    if rule.type == "not_contains":
        return not any(t in code for t in tokens)
    if rule.type == "starts_with":
        return any(code.startswith(t) for t in tokens) if tokens else True
    if rule.type == "length_eq":
        try:
            return len(code) == int(rule.value.strip())
        except ValueError:
            return True  # misconfigured rule never blocks the line
    return True


def measurement_matches(measurement: str, standard: str) -> bool:
    std_num = _to_number(standard)
    if std_num is not None:
        got = _to_number(measurement)
        return got is not None and abs(got - std_num) < 1e-9
    return measurement.strip().upper() == standard.strip().upper()


def is_duplicate(history: Iterable[ScanRecord], stage_id: int, product_code: str) -> bool:
    return any(
        _text(r.stage) == str(stage_id) and r.status == "valid" and _text(r.productCode) == product_code
        for r in history
    )


def check_scan(
    stage: Stage,
    history: Iterable[ScanRecord],
    candidate: ScanCheckIn,
    assigned: Dict[str, Any],
) -> ScanCheckOut:
    code = candidate.productCode.strip()

    # 1) employee
    employee = _text(candidate.employeeId) or _text(assigned.get(str(stage.id)))
    if not employee:
        return ScanCheckOut(status="error", message="Chưa nhập mã nhân viên")

    # 2) duplicate at this stage
    if is_duplicate(history, stage.id, code):
        return ScanCheckOut(status="error", message=f"Mã {code} đã được quét", employeeId=employee)

    # 3) product-code rules
    for rule in stage.validationRules or []:
        if rule.isActive and not rule_passes(rule, code):
            msg = rule.errorMessage or f"Mã {code} không đạt quy tắc '{rule.name}'"
            return ScanCheckOut(status="error", message=msg, employeeId=employee)

    # 4) auxiliary-field whitelists
    labels = ensure_size8(stage.additionalFieldLabels)
    lists = ensure_size8(stage.additionalFieldValidationLists)
    values = ensure_size8(candidate.additionalValues)
    for idx, (label, whitelist) in enumerate(zip(labels, lists)):
        if not label or not whitelist.strip():
            continue
        if values[idx].strip() not in whitelist.split():
            return ScanCheckOut(
                status="error",
                message=f"{label}: giá trị '{values[idx]}' không có trong danh sách",
                employeeId=employee,
            )

    # 5) measurement
    if stage.enableMeasurement:
        label = stage.measurementLabel or "Measurement"
        measurement = (candidate.measurement or "").strip()
        if not measurement:
            return ScanCheckOut(status="error", message=f"Thiếu {label}", employeeId=employee)
        standard = _text(stage.measurementStandard)
        if standard and not measurement_matches(measurement, standard):
            return ScanCheckOut(
                status="defect",
                message=f"{label} = {measurement} (chuẩn {standard})",
                employeeId=employee,
            )

    return ScanCheckOut(status="valid", employeeId=employee)
