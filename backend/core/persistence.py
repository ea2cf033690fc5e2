"""
core/persistence.py ── JSON mirror of the shared scan state
──────────────────────────────────────────────
- load_state(): read manufacturing_data.json once at start-up
- backup_file(): keep a copy when the loader had to drop anything
- StateWriter : write queue drained by one background thread
  (newest pending document wins, temp file + os.replace)
Write failures are logged and counted, never raised back to the hub.
"""
from __future__ import annotations

import json
import logging
import os
import queue
import shutil
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("state_writer")


def dump_document(state: Dict[str, Any]) -> str:
    return json.dumps(state, ensure_ascii=False, indent=2)


def load_state(path: str | Path) -> Optional[Dict[str, Any]]:
    p = Path(path)
    if not p.exists():
        return None
    try:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Error loading data from %s: %s", p, e)
        return None
    if not isinstance(data, dict):
        logger.error("Ignoring %s: top-level JSON is not an object", p)
        return None
    logger.info("📂 Data loaded from disk: %s", p)
    return data


def backup_file(path: str | Path) -> Optional[Path]:
    """Copy a document the loader could not fully use to <name>.<stamp>.bak."""
    p = Path(path)
    if not p.exists():
        return None
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    target = p.with_name(f"{p.name}.{stamp}.bak")
    try:
        shutil.copy2(p, target)
    except OSError as e:
        logger.error("Could not back up %s: %s", p, e)
        return None
    logger.warning("🗂️  Kept a copy of %s at %s", p, target)
    return target


class StateWriter:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._stats_lock = threading.Lock()
        self._closed = False
        self.writes_ok = 0
        self.writes_failed = 0
        self.last_error: Optional[str] = None
        self.last_written_at: Optional[str] = None

        self._thread = threading.Thread(target=self._run, name="state-writer", daemon=True)
        self._thread.start()

    # ───────── producer side ─────────
    def submit(self, document: str) -> None:
        if self._closed:
            logger.warning("StateWriter closed; dropping document for %s", self.path)
            return
        self._queue.put(document)

    def wait_idle(self) -> None:
        """Block until every submitted document has been handled."""
        self._queue.join()

    def close(self, timeout: float = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(None)
        self._thread.join(timeout)

    def status(self) -> Dict[str, Any]:
        with self._stats_lock:
            return {
                "path": str(self.path),
                "pending": self._queue.qsize(),
                "writes_ok": self.writes_ok,
                "writes_failed": self.writes_failed,
                "last_error": self.last_error,
                "last_written_at": self.last_written_at,
            }

    # ───────── writer thread ─────────
    def _run(self) -> None:
        while True:
            item = self._queue.get()
            taken = 1
            stop = item is None
            latest = item

            # coalesce: only the newest pending snapshot matters
            while True:
                try:
                    nxt = self._queue.get_nowait()
                except queue.Empty:
                    break
                taken += 1
                if nxt is None:
                    stop = True
                else:
                    latest = nxt

            try:
                if latest is not None:
                    self._write(latest)
            finally:
                for _ in range(taken):
                    self._queue.task_done()

            if stop:
                break

    def _write(self, document: str) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            logger.error("Error saving data to %s: %s", self.path, e)
            with self._stats_lock:
                self.writes_failed += 1
                self.last_error = str(e)
            return
        finally:
            if tmp_name and os.path.exists(tmp_name):
                try:
                    os.remove(tmp_name)
                except OSError:
                    pass

        with self._stats_lock:
            self.writes_ok += 1
            self.last_written_at = datetime.now(timezone.utc).isoformat()
