"""High-level runner that binds a search config to devices, backend and sweeper."""

from __future__ import annotations

import json
import time
from typing import Any, Optional

from cellsearch.capture.capbuf import Capture
from cellsearch.drivers.rtlsdr import RTLSDRSource
from cellsearch.drivers.soapy import SDRSource, parse_soapy_args
from cellsearch.io.report import format_report, report_records
from cellsearch.kernels.loader import load_kernels
from cellsearch.sweep.config import SearchConfig
from cellsearch.sweep.grid import SearchGrid
from cellsearch.sweep.sweeper import CellSweeper, SweepResult
from cellsearch.util.errors import CellSearchError, ConfigurationError, DeviceUnavailableError
from cellsearch.util.exit_codes import ExitCode
from cellsearch.util.logging import get_logger, log_exception
from cellsearch.util.scan_logger import ScanLogger

logger = get_logger(__name__)


class CellSearchRunner:
    """Open the capture path, load the kernel backend and run one search."""

    def __init__(
        self,
        config: SearchConfig,
        *,
        grid: Optional[SearchGrid] = None,
        kernels: Any = None,
        capture: Optional[Capture] = None,
    ):
        self.config = config
        self.grid = grid if grid is not None else config.validate()
        self.scan_logger = ScanLogger.from_target(config.jsonl)
        self.kernels = kernels if kernels is not None else load_kernels(config.kernels or "")
        self.capture = capture or Capture(
            None if config.replay else self._select_source,
            correction=config.correction,
            record=config.record,
            replay=config.replay,
            data_dir=config.data_dir,
        )

    def _select_source(self, samp_rate: float):
        config = self.config
        soapy_args_dict = parse_soapy_args(config.soapy_args)

        if config.driver == "rtlsdr_native":
            return RTLSDRSource(samp_rate=samp_rate, gain=config.gain)

        try:
            return SDRSource(driver=config.driver, samp_rate=samp_rate, gain=config.gain, soapy_args=soapy_args_dict)
        except Exception as exc:
            msg = str(exc)
            if config.driver == "rtlsdr" and (
                "no match" in msg.lower() or "device::make" in msg or "not available" in msg.lower()
            ):
                idx_hint = None
                serial_hint = None
                if soapy_args_dict:
                    serial_hint = soapy_args_dict.get("serial")
                    if "index" in soapy_args_dict:
                        try:
                            idx_hint = int(soapy_args_dict["index"])
                        except ValueError:
                            idx_hint = None
                last_err: Optional[Exception] = None
                for _ in range(3):
                    try:
                        src = RTLSDRSource(
                            samp_rate=samp_rate,
                            gain=config.gain,
                            device_index=idx_hint,
                            serial_number=serial_hint,
                        )
                        logger.info("Soapy RTL-SDR module unavailable, using native librtlsdr")
                        return src
                    except DeviceUnavailableError as retry_exc:  # pragma: no cover - hardware specific
                        last_err = retry_exc
                        time.sleep(0.2)
                raise last_err if last_err else exc
            if isinstance(exc, CellSearchError):
                raise
            raise DeviceUnavailableError(f"cannot open SoapySDR device '{config.driver}': {exc}") from exc

    def _describe(self) -> None:
        grid = self.grid
        if grid.freq_start_hz == grid.freq_end_hz:
            logger.info("Search frequency: %.1f MHz", grid.freq_start_hz / 1e6)
        else:
            logger.info("Search frequency range: %.1f-%.1f MHz", grid.freq_start_hz / 1e6, grid.freq_end_hz / 1e6)
        logger.info("PPM: %g", grid.ppm)
        logger.info("correction: %.20g", self.config.correction)
        if self.config.record:
            logger.info("Captured data will be saved in %s/capbuf_XXXXX.npy files", self.config.data_dir)
        if self.config.replay:
            logger.info("Captured data will be read from %s/capbuf_XXXXX.npy files", self.config.data_dir)

    def run(self) -> SweepResult:
        self._describe()
        sweeper = CellSweeper(self.config, self.grid, self.capture, self.kernels, scan_logger=self.scan_logger)
        try:
            return sweeper.run()
        finally:
            self.capture.close()

    def render(self, result: SweepResult) -> str:
        if self.config.json_output:
            return json.dumps(report_records(result.cells, self.config.correction), indent=2)
        return format_report(result.cells, self.config.correction)


def run_search(
    config: SearchConfig,
    *,
    grid: Optional[SearchGrid] = None,
    kernels: Any = None,
    capture: Optional[Capture] = None,
) -> int:
    """Run a complete search and print the report; returns the process exit code."""
    try:
        runner = CellSearchRunner(config, grid=grid, kernels=kernels, capture=capture)
        result = runner.run()
    except ConfigurationError as exc:
        logger.error("%s: %s", ExitCode.message(exc.exit_code), exc, extra={"error_type": type(exc).__name__})
        return exc.exit_code
    except CellSearchError as exc:
        log_exception(logger, f"{ExitCode.message(exc.exit_code)}: {exc}", error_type=type(exc).__name__)
        return exc.exit_code
    print(runner.render(result), flush=True)
    return ExitCode.SUCCESS
