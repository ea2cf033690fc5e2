# core/state_store.py
"""
Authoritative AppState for one hub process.

Mutations are plain synchronous methods; the caller (BroadcastHub) serializes
them. After every mutation the full state is handed to the StateWriter queue.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from core.persistence import StateWriter, backup_file, dump_document, load_state
from models.scan_models import AppState, ScanRecord, Stage, default_stages, ensure_unique_stage_ids

logger = logging.getLogger("state_store")

_STATE_KEYS = ("history", "stages", "stageEmployees")


def _lenient_state(raw: Dict[str, Any]) -> Tuple[AppState, int]:
    """Build an AppState entry by entry; returns (state, number of dropped entries)."""
    dropped = 0

    history: List[ScanRecord] = []
    raw_history = raw.get("history")
    if isinstance(raw_history, list):
        for pos, item in enumerate(raw_history):
            try:
                history.append(ScanRecord.model_validate(item))
            except ValidationError as e:
                dropped += 1
                logger.warning("Skipping stored scan #%d: %s", pos, e)
    elif raw_history is not None:
        dropped += 1
        logger.warning("Stored history is not a list; ignored")

    raw_stages = raw.get("stages")
    if isinstance(raw_stages, list):
        stages: List[Stage] = []
        seen: set[int] = set()
        for pos, item in enumerate(raw_stages):
            try:
                stage = Stage.model_validate(item)
            except ValidationError as e:
                dropped += 1
                logger.warning("Skipping stored stage #%d: %s", pos, e)
                continue
            if stage.id in seen:
                dropped += 1
                logger.warning("Skipping stored stage #%d: duplicate id %s", pos, stage.id)
                continue
            seen.add(stage.id)
            stages.append(stage)
    else:
        stages = default_stages()
        if raw_stages is not None:
            dropped += 1
            logger.warning("Stored stages are not a list; using defaults")

    raw_employees = raw.get("stageEmployees")
    employees: Dict[str, Any] = {}
    if isinstance(raw_employees, dict):
        employees = {str(k): v for k, v in raw_employees.items()}
    elif raw_employees is not None:
        dropped += 1
        logger.warning("Stored stageEmployees is not an object; ignored")

    extras = {k: v for k, v in raw.items() if k not in _STATE_KEYS}
    state = AppState(history=history, stages=stages, stageEmployees=employees, **extras)
    return state, dropped


class StateStore:
    def __init__(self, state: Optional[AppState] = None, writer: Optional[StateWriter] = None):
        self._state = state if state is not None else AppState()
        self._writer = writer

    @classmethod
    def from_file(cls, path: Union[str, Path], writer: Optional[StateWriter] = None) -> "StateStore":
        """
        Load what can be used and skip only the entries that cannot; if
        anything was skipped (or the file is unreadable) a backup copy is
        kept before the next flush overwrites the document.
        """
        raw = load_state(path)
        if raw is None:
            if Path(path).exists():
                backup_file(path)
            logger.info("Starting with default state")
            return cls(None, writer)

        state, dropped = _lenient_state(raw)
        if dropped:
            logger.error("Skipped %d unusable entries while loading %s", dropped, path)
            backup_file(path)
        logger.info(
            "Loaded %d scans, %d stages, %d assignments",
            len(state.history), len(state.stages), len(state.stageEmployees),
        )
        return cls(state, writer)

    # ───────── read ─────────
    @property
    def writer(self) -> Optional[StateWriter]:
        return self._writer

    @property
    def history(self) -> List[ScanRecord]:
        return self._state.history

    @property
    def stages(self) -> List[Stage]:
        return self._state.stages

    @property
    def stage_employees(self) -> Dict[str, Any]:
        return self._state.stageEmployees

    def get_stage(self, stage_id: int) -> Optional[Stage]:
        return next((s for s in self._state.stages if s.id == stage_id), None)

    def snapshot(self) -> Dict[str, Any]:
        return self._state.to_wire()

    def history_wire(self) -> List[Dict[str, Any]]:
        return [r.to_wire() for r in self._state.history]

    def stages_wire(self) -> List[Dict[str, Any]]:
        return [s.to_wire() for s in self._state.stages]

    def employees_wire(self) -> Dict[str, Any]:
        return dict(self._state.stageEmployees)

    # ───────── mutations ─────────
    def apply_scan(self, record: ScanRecord) -> None:
        # trusted: the station already validated it; no dedup on id
        self._state.history.insert(0, record)
        self._flush()

    def replace_stages(self, stages: List[Stage]) -> None:
        ensure_unique_stage_ids(stages)
        self._state.stages = list(stages)
        self._flush()

    def set_employee(self, stage_id: Union[int, str], employee_id: Any) -> None:
        self._state.stageEmployees[str(stage_id)] = employee_id
        self._flush()

    def reset(self) -> None:
        self._state.history = []
        self._state.stageEmployees = {}
        self._flush()

    def _flush(self) -> None:
        if self._writer is None:
            return
        self._writer.submit(dump_document(self.snapshot()))
