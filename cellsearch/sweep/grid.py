"""Center-frequency and frequency-offset search grids."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import numpy as np

from cellsearch.util.errors import ConfigurationError
from cellsearch.util.logging import get_logger
from cellsearch.util.units import is_on_raster, snap_to_raster

logger = get_logger(__name__)

RASTER_HZ = 100e3
OFFSET_STEP_HZ = 5e3
MIN_START_HZ = 1e6
PPM_WARN_LIMIT = 200.0


@dataclass(frozen=True)
class SweepPoint:
    """Single center frequency emitted by the scheduler."""

    index: int
    center_hz: float


class CenterFrequencyScheduler:
    """Generate the ordered center frequencies of a sweep on the 100 kHz raster."""

    def __init__(self, start_hz: float, stop_hz: float, step_hz: float = RASTER_HZ) -> None:
        if step_hz <= 0:
            raise ValueError("step_hz must be positive")
        if stop_hz < start_hz:
            raise ValueError("stop_hz must be >= start_hz")
        self._start_hz = float(start_hz)
        self._stop_hz = float(stop_hz)
        self._step_hz = float(step_hz)

    def __iter__(self) -> Iterator[SweepPoint]:
        # Index-based stepping keeps long sweeps exactly on the raster.
        for idx in range(self.count):
            yield SweepPoint(index=idx, center_hz=self._start_hz + idx * self._step_hz)

    def points(self) -> List[SweepPoint]:
        """Eagerly materialize the scheduled points."""

        return list(iter(self))

    @property
    def count(self) -> int:
        """Return the number of center frequencies implied by the schedule."""

        span = max(self._stop_hz - self._start_hz, 0.0)
        return int(math.floor(span / self._step_hz + 1e-9)) + 1


def offset_extra_points(freq_start_hz: float, ppm: float) -> int:
    """Offsets needed on each side of zero to cover the crystal error budget.

    The outermost offset is never closer to zero than
    ``freq_start_hz * ppm / 1e6 + OFFSET_STEP_HZ / 2``.
    """
    excursion = float(freq_start_hz) * float(ppm) / 1e6 + OFFSET_STEP_HZ / 2.0
    n_extra = int(math.ceil(excursion / OFFSET_STEP_HZ))
    while n_extra * OFFSET_STEP_HZ < excursion:
        n_extra += 1
    return n_extra


def offset_search_set(freq_start_hz: float, ppm: float) -> np.ndarray:
    n_extra = offset_extra_points(freq_start_hz, ppm)
    return np.arange(-n_extra, n_extra + 1, dtype=np.float64) * OFFSET_STEP_HZ


@dataclass(frozen=True)
class SearchGrid:
    freq_start_hz: float
    freq_end_hz: float
    ppm: float
    offsets_hz: np.ndarray
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def scheduler(self) -> CenterFrequencyScheduler:
        return CenterFrequencyScheduler(self.freq_start_hz, self.freq_end_hz)

    @property
    def center_frequencies_hz(self) -> List[float]:
        return [point.center_hz for point in self.scheduler]


def build_search_grid(freq_start_hz: float, freq_end_hz: Optional[float] = None, ppm: float = 100.0) -> SearchGrid:
    """Validate the requested range and build the center/offset grids.

    Raises ConfigurationError for a start below 1 MHz, an end below the
    start, or a negative ppm. Off-raster frequencies are rounded to the
    nearest 100 kHz and reported as warnings.
    """
    warnings: List[str] = []
    freq_start = float(freq_start_hz)
    if not math.isfinite(freq_start) or freq_start < MIN_START_HZ:
        raise ConfigurationError("start frequency must be greater than 1MHz")
    if not is_on_raster(freq_start, RASTER_HZ):
        freq_start = snap_to_raster(freq_start, RASTER_HZ)
        warnings.append("start frequency has been rounded to the nearest multiple of 100kHz")

    freq_end = freq_start if freq_end_hz is None else float(freq_end_hz)
    if not math.isfinite(freq_end) or freq_end < freq_start:
        raise ConfigurationError("end frequency must be >= start frequency")
    if not is_on_raster(freq_end, RASTER_HZ):
        freq_end = snap_to_raster(freq_end, RASTER_HZ)
        warnings.append("end frequency has been rounded to the nearest multiple of 100kHz")

    ppm_val = float(ppm)
    if not math.isfinite(ppm_val) or ppm_val < 0:
        raise ConfigurationError("ppm value must be positive")
    if ppm_val > PPM_WARN_LIMIT:
        warnings.append("ppm value appears to be set unreasonably high")

    for message in warnings:
        logger.warning(message)

    return SearchGrid(
        freq_start_hz=freq_start,
        freq_end_hz=freq_end,
        ppm=ppm_val,
        offsets_hz=offset_search_set(freq_start, ppm_val),
        warnings=tuple(warnings),
    )
