"""Capture buffers: live from an SDR, or recorded to / replayed from disk."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np

from cellsearch.dsp.threshold import FS_CAPTURE
from cellsearch.util.errors import CaptureError, ConfigurationError
from cellsearch.util.logging import get_logger

logger = get_logger(__name__)

# 80 ms at 1.92 MSPS: eight PSS half frames plus margin for SSS/MIB.
CAPTURE_LENGTH = 153600
# Samples discarded after each retune while the tuner settles.
FLUSH_LENGTH = 16384
# Largest accepted gap between the requested and the delivered sample rate.
SAMPLE_RATE_TOLERANCE_HZ = 1.0

SourceFactory = Callable[[float], Any]


def capbuf_path(data_dir: Path, center_frequency_hz: float) -> Path:
    """File that holds the recorded buffer of one center frequency."""
    return Path(data_dir) / f"capbuf_{int(round(center_frequency_hz / 100e3)):05d}.npy"


class Capture:
    """Produce one capture buffer per center frequency.

    ``source_factory`` is called with the programmed sample rate the first
    time a live capture is needed and must return an object with ``device``,
    ``sample_rate``, ``tune``, ``read``, ``flush`` and ``close``. The
    correction factor scales both the tuned frequency and the sample rate
    so that the true center frequency is ``fc`` despite the crystal error.
    """

    def __init__(
        self,
        source_factory: Optional[SourceFactory] = None,
        *,
        correction: float = 1.0,
        record: bool = False,
        replay: bool = False,
        data_dir: str | Path = ".",
        capture_length: int = CAPTURE_LENGTH,
    ) -> None:
        if record and replay:
            raise ConfigurationError("cannot read and write captured data at the same time")
        if correction <= 0:
            raise ConfigurationError("correction factor must be positive")
        if not replay and source_factory is None:
            raise ConfigurationError("live capture needs an SDR source")
        self.source_factory = source_factory
        self.correction = float(correction)
        self.record = bool(record)
        self.replay = bool(replay)
        self.data_dir = Path(data_dir)
        self.capture_length = int(capture_length)
        self._source: Any = None
        self.device_sample_rate: Optional[float] = None

    @property
    def sample_rate(self) -> float:
        return FS_CAPTURE * self.correction

    def capture(self, center_frequency_hz: float) -> np.ndarray:
        if self.replay:
            return self._load(center_frequency_hz)
        capbuf = self._read_live(center_frequency_hz)
        if self.record:
            self._save(center_frequency_hz, capbuf)
        return capbuf

    def _load(self, fc: float) -> np.ndarray:
        path = capbuf_path(self.data_dir, fc)
        if not path.exists():
            raise CaptureError(f"no recorded capture for {fc / 1e6:.1f} MHz at {path}")
        logger.debug("Loading capture buffer from %s", path, extra={"center_hz": fc})
        return np.asarray(np.load(path), dtype=np.complex64)

    def _save(self, fc: float, capbuf: np.ndarray) -> None:
        path = capbuf_path(self.data_dir, fc)
        path.parent.mkdir(parents=True, exist_ok=True)
        np.save(path, capbuf)
        logger.debug("Saved capture buffer to %s", path, extra={"center_hz": fc})

    def _open_source(self) -> Any:
        source = self.source_factory(self.sample_rate)
        self.device_sample_rate = float(source.sample_rate)
        logger.info("Opened %s at %.1f kS/s", source.device, self.device_sample_rate / 1e3)
        if abs(self.device_sample_rate - self.sample_rate) > SAMPLE_RATE_TOLERANCE_HZ:
            logger.warning(
                "%s runs at %.3f S/s instead of %.3f S/s; frequency offsets will be biased",
                source.device,
                self.device_sample_rate,
                self.sample_rate,
            )
        return source

    def _read_live(self, fc: float) -> np.ndarray:
        if self._source is None:
            self._source = self._open_source()
        self._source.tune(fc * self.correction)
        self._source.flush(FLUSH_LENGTH)
        capbuf = np.asarray(self._source.read(self.capture_length), dtype=np.complex64)
        if capbuf.size < self.capture_length:
            raise CaptureError(f"short capture at {fc / 1e6:.1f} MHz: {capbuf.size}/{self.capture_length} samples")
        return capbuf

    def close(self) -> None:
        if self._source is not None:
            self._source.close()
            self._source = None
