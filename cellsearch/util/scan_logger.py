"""Structured scan event logging (JSON lines)."""

from __future__ import annotations

import json
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from cellsearch.util.logging import get_logger

logger = get_logger(__name__)


def utc_now_str() -> str:
    return datetime.now(timezone.utc).isoformat()


class ScanLogger:
    """Append one JSON object per search event to ``log_path``.

    Every record carries the run id and the index of the center frequency
    being searched (``None`` outside a center).
    """

    def __init__(self, log_path: Path):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.run_id = f"run-{int(time.time() * 1000)}-pid{os.getpid()}"
        self.current_center: Optional[int] = None

    @classmethod
    def from_target(cls, target: Optional[str]) -> Optional["ScanLogger"]:
        """Build a logger for ``target``; returns None when no target is configured."""
        if not target:
            return None
        return cls(Path(target).expanduser())

    def start_center(self, sweep_index: int, **metadata: Any) -> None:
        self.current_center = sweep_index
        self.log("center_start", **metadata)

    def log(self, event: str, **fields: Any) -> None:
        record = {
            "ts": utc_now_str(),
            "run_id": self.run_id,
            "sweep_index": self.current_center,
            "event": event,
            **fields,
        }
        try:
            with self.log_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, default=str) + "\n")
        except OSError as exc:
            logger.warning("Failed to append scan event to %s: %s", self.log_path, exc)
