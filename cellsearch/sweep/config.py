"""Explicit run configuration for a cell search."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from cellsearch.detection.dedup import SAME_CELL_SPAN_HZ
from cellsearch.sweep.grid import SearchGrid, build_search_grid
from cellsearch.util.errors import ConfigurationError
from cellsearch.util.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PPM = 100.0
DEFAULT_CORRECTION = 1.0
# A correction factor further than this from 1.0 is probably a typo.
CORRECTION_WARN_LIMIT = 1000e-6


@dataclass(frozen=True)
class SearchConfig:
    freq_start_hz: float
    freq_end_hz: Optional[float] = None
    ppm: float = DEFAULT_PPM
    correction: float = DEFAULT_CORRECTION
    record: bool = False
    replay: bool = False
    data_dir: str = "."
    verbosity: int = 1
    driver: str = "rtlsdr"
    soapy_args: Optional[str] = None
    gain: str | float = "auto"
    kernels: Optional[str] = None
    jsonl: Optional[str] = None
    json_output: bool = False
    log_json: Optional[str] = None
    dedup_span_hz: float = SAME_CELL_SPAN_HZ
    fa_per_search: bool = False
    max_peaks: Optional[int] = None

    @classmethod
    def from_args(cls, args) -> "SearchConfig":
        """Build a config from the argparse namespace produced by the CLI."""
        return cls(
            freq_start_hz=float(args.freq_start),
            freq_end_hz=None if args.freq_end is None else float(args.freq_end),
            ppm=float(args.ppm),
            correction=float(args.correction),
            record=bool(args.record),
            replay=bool(args.load),
            data_dir=str(args.data_dir),
            verbosity=int(args.verbosity),
            driver=str(args.driver),
            soapy_args=args.soapy_args,
            gain=args.gain,
            kernels=args.kernels or os.environ.get("CELLSEARCH_KERNELS"),
            jsonl=args.jsonl,
            json_output=bool(args.json),
            log_json=args.log_json,
            dedup_span_hz=float(args.dedup_span_hz),
            fa_per_search=bool(args.fa_per_search),
            max_peaks=args.max_peaks,
        )

    def sanity_warnings(self) -> List[str]:
        warnings: List[str] = []
        if abs(self.correction - 1.0) > CORRECTION_WARN_LIMIT:
            warnings.append("crystal correction factor appears to be unreasonable")
        return warnings

    def validate(self) -> SearchGrid:
        """Check the configuration and return the search grid it describes."""
        if self.record and self.replay:
            raise ConfigurationError("cannot read and write captured data at the same time!")
        if self.correction <= 0:
            raise ConfigurationError("correction factor must be positive")
        if self.dedup_span_hz <= 0:
            raise ConfigurationError("dedup span must be positive")
        if self.max_peaks is not None and self.max_peaks < 1:
            raise ConfigurationError("max peaks must be >= 1")
        grid = build_search_grid(self.freq_start_hz, self.freq_end_hz, self.ppm)
        for message in self.sanity_warnings():
            logger.warning(message)
        return grid
