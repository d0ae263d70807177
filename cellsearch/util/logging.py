"""Logging for cellsearch: a stderr console plus an optional JSON-lines file.

All loggers live under the ``cellsearch`` namespace. The console level
follows the CLI verbosity (``-b`` warnings only, default info, ``-v``
debug) unless ``CELLSEARCH_DEBUG`` or ``CELLSEARCH_LOG_LEVEL`` overrides it.
Search context passed through ``extra=`` (``center_hz``, ``cell_id``,
``stage``) is appended to console lines and kept as fields in JSON lines:

    configure_logging(verbosity=2, json_file="cellsearch.log")
    logger = get_logger(__name__)
    logger.info("Detected a cell!", extra={"center_hz": 739e6, "cell_id": 31})
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

ROOT_LOGGER = "cellsearch"

# Fields callers may attach with ``extra=``.
CONTEXT_FIELDS = ("center_hz", "cell_id", "stage", "error_type", "duration_ms")

_VERBOSITY_LEVELS = ("WARNING", "INFO", "DEBUG")

_configured = False


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, search context as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _record_time(record).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_context(record))
        if record.exc_info:
            payload["traceback"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """``[time] LEVEL [module] message (fc=739.0MHz cell=31)``, colored on a TTY."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color and sys.stderr.isatty()

    @staticmethod
    def context_suffix(record: logging.LogRecord) -> str:
        parts: List[str] = []
        center_hz = getattr(record, "center_hz", None)
        if center_hz is not None:
            parts.append(f"fc={float(center_hz) / 1e6:.1f}MHz")
        cell_id = getattr(record, "cell_id", None)
        if cell_id is not None:
            parts.append(f"cell={cell_id}")
        stage = getattr(record, "stage", None)
        if stage:
            parts.append(f"stage={stage}")
        return f" ({' '.join(parts)})" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"
        module = record.name[len(ROOT_LOGGER) + 1:] if record.name.startswith(ROOT_LOGGER + ".") else record.name
        line = (
            f"[{_record_time(record):%Y-%m-%d %H:%M:%S}] {level} [{module}] "
            f"{record.getMessage()}{self.context_suffix(record)}"
        )
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return line


def level_for_verbosity(verbosity: int) -> str:
    """Map the CLI verbosity (0 brief, 1 normal, 2 verbose) to a level name."""
    return _VERBOSITY_LEVELS[min(max(int(verbosity), 0), len(_VERBOSITY_LEVELS) - 1)]


def _resolve_level(level: Optional[str], verbosity: Optional[int]) -> int:
    if os.environ.get("CELLSEARCH_DEBUG", "").strip().lower() in ("1", "true", "yes"):
        name = "DEBUG"
    elif level:
        name = level
    elif verbosity is not None:
        name = level_for_verbosity(verbosity)
    else:
        name = os.environ.get("CELLSEARCH_LOG_LEVEL", "INFO")
    return getattr(logging, name.upper(), logging.INFO)


def configure_logging(
    *,
    verbosity: Optional[int] = None,
    level: Optional[str] = None,
    json_file: Optional[str] = None,
    use_color: bool = True,
) -> None:
    """Install the console (and optional JSON file) handlers.

    An explicit ``level`` wins over ``verbosity``; ``CELLSEARCH_DEBUG=1``
    wins over both. Handlers from a previous call are closed and replaced.
    """
    global _configured

    numeric_level = _resolve_level(level, verbosity)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(numeric_level)
    root.propagate = False

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ConsoleFormatter(use_color=use_color))
    root.addHandler(console)

    if json_file:
        try:
            file_handler = logging.FileHandler(json_file, mode="a", encoding="utf-8")
        except OSError as exc:
            root.warning("Failed to open JSON log file %s: %s", json_file, exc)
        else:
            file_handler.setFormatter(JSONFormatter())
            root.addHandler(file_handler)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under ``cellsearch``, configuring defaults on first use."""
    if not _configured:
        configure_logging()
    if name == "__main__":
        name = f"{ROOT_LOGGER}.main"
    elif name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_exception(logger: logging.Logger, message: str, *, error_type: Optional[str] = None, **extra: Any) -> None:
    """Log the exception being handled, tagged with ``error_type`` and search context."""
    if error_type:
        extra["error_type"] = error_type
    logger.exception(message, extra=extra)
