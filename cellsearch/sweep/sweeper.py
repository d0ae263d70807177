"""Sweep orchestration tying capture, correlation, peak search and the pipeline together."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from cellsearch.capture.capbuf import Capture
from cellsearch.detection.dedup import CellDeduplicator
from cellsearch.detection.pipeline import CandidatePipeline
from cellsearch.detection.types import Cell
from cellsearch.dsp.peak_search import peak_search
from cellsearch.dsp.threshold import (
    DS_COMB_ARM,
    FALSE_ALARM_NINES,
    detection_threshold,
    noise_estimate_is_degenerate,
)
from cellsearch.kernels.base import CellSearchKernels
from cellsearch.sweep.config import SearchConfig
from cellsearch.sweep.grid import SearchGrid, SweepPoint
from cellsearch.util.logging import get_logger
from cellsearch.util.scan_logger import ScanLogger

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """Confirmed cells per center frequency (sweep order) and the merged list."""

    detected: List[List[Cell]] = field(default_factory=list)
    cells: List[Cell] = field(default_factory=list)
    peaks_examined: int = 0

    @property
    def confirmed_total(self) -> int:
        return sum(len(cells) for cells in self.detected)


class CellSweeper:
    """Run the cell search over every center frequency of a grid."""

    def __init__(
        self,
        config: SearchConfig,
        grid: SearchGrid,
        capture: Capture,
        kernels: CellSearchKernels,
        *,
        pipeline: Optional[CandidatePipeline] = None,
        scan_logger: Optional[ScanLogger] = None,
    ) -> None:
        self.config = config
        self.grid = grid
        self.capture = capture
        self.kernels = kernels
        self.scan_logger = scan_logger
        self.pipeline = pipeline or CandidatePipeline(kernels, scan_logger=scan_logger)
        backend_search = getattr(kernels, "peak_search", None)
        self.backend_peak_search = callable(backend_search)
        self.peak_search: Callable[..., List[Cell]] = backend_search if self.backend_peak_search else peak_search

    def _n_hypotheses(self) -> int:
        if self.config.fa_per_search:
            return max(1, int(self.grid.offsets_hz.size))
        return 1

    def _search_center(self, point: SweepPoint) -> Tuple[List[Cell], int]:
        """Return the confirmed cells at one center frequency and the number of peaks examined."""
        fc = point.center_hz
        logger.info("Examining center frequency %.1f MHz ...", fc / 1e6, extra={"center_hz": fc})
        if self.scan_logger:
            self.scan_logger.start_center(point.index, center_hz=fc)

        capbuf = self.capture.capture(fc)

        logger.debug("Calculating PSS correlations", extra={"center_hz": fc})
        corr = self.kernels.correlate(capbuf, self.grid.offsets_hz, DS_COMB_ARM, fc)
        if self.scan_logger:
            self.scan_logger.log(
                "correlation",
                center_hz=fc,
                n_comb_xc=int(corr.n_comb_xc),
                n_comb_sp=int(corr.n_comb_sp),
                noise_median=float(np.median(corr.noise_power)) if np.size(corr.noise_power) else None,
                intermediates=sorted(corr.intermediates),
            )
        if noise_estimate_is_degenerate(corr.noise_power):
            logger.warning("Degenerate noise estimate at %.1f MHz, skipping", fc / 1e6, extra={"center_hz": fc})
            if self.scan_logger:
                self.scan_logger.log("center_skipped", center_hz=fc, reason="degenerate_noise_estimate")
            return [], 0

        thresholds = detection_threshold(
            corr.noise_power,
            corr.n_comb_xc,
            DS_COMB_ARM,
            n_nines=FALSE_ALARM_NINES,
            n_hypotheses=self._n_hypotheses(),
        )
        logger.debug("Searching for and examining correlation peaks...", extra={"center_hz": fc})
        search_kwargs: Dict[str, Any] = {} if self.config.max_peaks is None else {"max_peaks": self.config.max_peaks}
        if self.backend_peak_search:
            search_kwargs["intermediates"] = corr.intermediates
        peaks = self.peak_search(corr.power, corr.offset_index, thresholds, self.grid.offsets_hz, fc, **search_kwargs)
        if self.scan_logger:
            self.scan_logger.log(
                "peaks",
                center_hz=fc,
                n_peaks=len(peaks),
                n_comb_xc=int(corr.n_comb_xc),
                threshold_median=float(np.median(thresholds)),
            )
        confirmed = self.pipeline.run(peaks, capbuf, fc)
        if self.scan_logger:
            self.scan_logger.log("center_done", center_hz=fc, n_peaks=len(peaks), n_confirmed=len(confirmed))
        return confirmed, len(peaks)

    def run(self) -> SweepResult:
        result = SweepResult()
        started = time.monotonic()
        if self.scan_logger:
            self.scan_logger.log(
                "search_start",
                freq_start_hz=self.grid.freq_start_hz,
                freq_end_hz=self.grid.freq_end_hz,
                ppm=self.grid.ppm,
                correction=self.config.correction,
                n_offsets=int(self.grid.offsets_hz.size),
            )
        for point in self.grid.scheduler:
            confirmed, n_peaks = self._search_center(point)
            result.detected.append(confirmed)
            result.peaks_examined += n_peaks

        dedup = CellDeduplicator(self.config.dedup_span_hz)
        for cells in result.detected:
            dedup.ingest(cells)
        result.cells = dedup.cells

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Search done: %d peaks examined, %d confirmed, %d distinct cells",
            result.peaks_examined,
            result.confirmed_total,
            len(result.cells),
            extra={"duration_ms": duration_ms},
        )
        if self.scan_logger:
            self.scan_logger.log(
                "search_done",
                peaks=result.peaks_examined,
                confirmed=result.confirmed_total,
                cells=len(result.cells),
                merged=dedup.merged,
                duration_ms=duration_ms,
            )
        return result
