# models/scan_models.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

FIELD_SLOTS = 8

# loose scalar: stored exactly as the station sent it
Scalar = Union[str, int, float, bool, None]


def ensure_size8(values: Optional[List[str]]) -> List[str]:
    """Pad / cut an auxiliary-field list to exactly 8 slots."""
    out = list(values or [])
    while len(out) < FIELD_SLOTS:
        out.append("")
    return out[:FIELD_SLOTS]


# ── wire base: camelCase keys as stations send them, unknown keys kept ──
class WireModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    def to_wire(self) -> Dict[str, Any]:
        # explicit nulls survive, unset defaults stay off the wire
        return self.model_dump(mode="json", exclude_unset=True)


# ========== Stage configuration ==========
class ValidationRule(WireModel):
    id: str
    name: str = ""
    type: Literal["contains", "not_contains", "starts_with", "length_eq"]
    value: str = ""
    isActive: bool = True
    errorMessage: str = ""


class Stage(WireModel):
    id: int
    name: Optional[str] = None
    enableMeasurement: Optional[bool] = None
    measurementLabel: Optional[str] = None
    measurementStandard: Scalar = None          # "PASS" (text) or "10.5" (number)
    additionalFieldLabels: Optional[List[str]] = None   # "" = slot disabled
    additionalFieldDefaults: Optional[List[str]] = None
    additionalFieldValidationLists: Optional[List[str]] = None  # space-joined codes
    validationRules: Optional[List[ValidationRule]] = None

    def normalized(self) -> "Stage":
        return self.model_copy(
            update={
                "additionalFieldLabels": ensure_size8(self.additionalFieldLabels),
                "additionalFieldDefaults": ensure_size8(self.additionalFieldDefaults),
                "additionalFieldValidationLists": ensure_size8(self.additionalFieldValidationLists),
                "validationRules": list(self.validationRules or []),
            }
        )


def default_stages() -> List[Stage]:
    return [
        Stage(
            id=1,
            name="Kiểm tra sản phẩm",
            enableMeasurement=True,
            measurementLabel="Kết quả Test",
            measurementStandard="OK",
            additionalFieldLabels=ensure_size8(None),
            additionalFieldDefaults=ensure_size8(None),
            additionalFieldValidationLists=ensure_size8(None),
            validationRules=[],
        )
    ]


def ensure_unique_stage_ids(stages: List[Stage]) -> None:
    seen: set[int] = set()
    for s in stages:
        if s.id in seen:
            raise ValueError(f"Duplicate stage id: {s.id}")
        seen.add(s.id)


# ========== Scans ==========
# Only `id` is required; the hub stores every other field as received.
class ScanRecord(WireModel):
    id: Union[str, int]
    stt: Scalar = None
    productCode: Scalar = None
    model: Scalar = None           # IMEI prefix / plan string
    modelName: Scalar = None
    employeeId: Scalar = None
    timestamp: Scalar = None       # ISO-8601
    status: Scalar = None          # "valid" | "error" | "defect"
    note: Any = None
    stage: Union[int, str, None] = None
    measurement: Scalar = None
    additionalValues: Optional[List[Any]] = None


class EmployeeAssignment(WireModel):
    stageId: Union[int, str]
    employeeId: Scalar = None      # null clears the assignment


# ========== Shared state ==========
class AppState(WireModel):
    history: List[ScanRecord] = Field(default_factory=list)   # newest first
    stages: List[Stage] = Field(default_factory=default_stages)
    stageEmployees: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "history": [r.to_wire() for r in self.history],
            "stages": [s.to_wire() for s in self.stages],
            "stageEmployees": dict(self.stageEmployees),
        }
        for k, v in (self.model_extra or {}).items():
            out.setdefault(k, v)
        return out


# ── station-side check (POST /api/scan/check) ──────────────────────
class ScanCheckIn(BaseModel):
    stage: int
    productCode: str = Field(..., min_length=1)
    employeeId: Optional[str] = None
    measurement: Optional[str] = None
    additionalValues: Optional[List[str]] = None


class ScanCheckOut(BaseModel):
    status: Literal["valid", "error", "defect"]
    message: str = ""
    employeeId: Optional[str] = None
