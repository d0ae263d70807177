import json
import logging

import pytest

from cellsearch.util.exit_codes import ExitCode
from cellsearch.util.logging import (
    ConsoleFormatter,
    JSONFormatter,
    configure_logging,
    get_logger,
    level_for_verbosity,
)
from cellsearch.util.scan_logger import ScanLogger


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("cellsearch.sweep.sweeper", logging.INFO, __file__, 1, "Examining %s", ("fc",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.parametrize("verbosity,level", [(-1, "WARNING"), (0, "WARNING"), (1, "INFO"), (2, "DEBUG"), (5, "DEBUG")])
def test_level_for_verbosity(verbosity, level) -> None:
    assert level_for_verbosity(verbosity) == level


def test_console_line_carries_search_context() -> None:
    line = ConsoleFormatter(use_color=False).format(_record(center_hz=739e6, cell_id=31))
    assert "[sweep.sweeper] Examining fc" in line
    assert line.endswith("(fc=739.0MHz cell=31)")


def test_console_line_without_context() -> None:
    line = ConsoleFormatter(use_color=False).format(_record())
    assert line.endswith("Examining fc")


def test_json_line_keeps_context_fields() -> None:
    payload = json.loads(JSONFormatter().format(_record(center_hz=739e6, stage="peak_found")))
    assert payload["message"] == "Examining fc"
    assert payload["center_hz"] == 739e6
    assert payload["stage"] == "peak_found"
    assert "cell_id" not in payload


def test_json_log_file_and_verbosity(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("CELLSEARCH_DEBUG", raising=False)
    path = tmp_path / "cellsearch.log"
    configure_logging(verbosity=0, json_file=str(path), use_color=False)
    try:
        logger = get_logger("tests.logging")
        assert logger.name == "cellsearch.tests.logging"
        logger.info("hidden at brief verbosity")
        logger.warning("kept", extra={"cell_id": 62})
    finally:
        configure_logging(verbosity=1, use_color=False)
    records = [json.loads(line) for line in path.read_text().splitlines()]
    assert [r["message"] for r in records] == ["kept"]
    assert records[0]["cell_id"] == 62


def test_debug_environment_overrides_verbosity(monkeypatch) -> None:
    monkeypatch.setenv("CELLSEARCH_DEBUG", "1")
    try:
        configure_logging(verbosity=0, use_color=False)
        assert logging.getLogger("cellsearch").level == logging.DEBUG
    finally:
        monkeypatch.delenv("CELLSEARCH_DEBUG")
        configure_logging(verbosity=1, use_color=False)


def test_scan_logger_needs_a_target(tmp_path) -> None:
    assert ScanLogger.from_target(None) is None
    assert ScanLogger.from_target("") is None
    scan_logger = ScanLogger.from_target(str(tmp_path / "nested" / "scan.jsonl"))
    scan_logger.start_center(4, center_hz=739.4e6)
    (event,) = [json.loads(line) for line in (tmp_path / "nested" / "scan.jsonl").read_text().splitlines()]
    assert event["event"] == "center_start"
    assert event["sweep_index"] == 4
    assert event["run_id"] == scan_logger.run_id


def test_exit_code_messages() -> None:
    assert ExitCode.message(ExitCode.CAPTURE_FAILED) == "Capture failed"
    assert ExitCode.message(ExitCode.HELP) == "Help requested"
    assert ExitCode.message(42) == "Unknown exit code 42"
