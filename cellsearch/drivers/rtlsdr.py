"""Native librtlsdr (pyrtlsdr) capture source."""

from __future__ import annotations

from typing import Optional

import numpy as np

from cellsearch.util.errors import DeviceUnavailableError

try:  # pragma: no cover - optional dependency
    from rtlsdr import RtlSdr  # type: ignore

    HAVE_RTLSDR = True
except ImportError:  # pragma: no cover - optional dependency
    HAVE_RTLSDR = False
    RtlSdr = None  # type: ignore


class RTLSDRSource:
    """Convenience wrapper around pyrtlsdr.RtlSdr."""

    device = "RTL-SDR (native)"

    def __init__(self, samp_rate: float, gain: str | float, *, device_index: Optional[int] = None, serial_number: Optional[str] = None):
        if not HAVE_RTLSDR:
            raise DeviceUnavailableError("pyrtlsdr not available")
        try:
            if serial_number:
                self.dev = RtlSdr(serial_number=str(serial_number))  # type: ignore[call-arg]
            elif device_index is not None:
                self.dev = RtlSdr(device_index=int(device_index))  # type: ignore[call-arg]
            else:
                self.dev = RtlSdr()  # type: ignore[call-arg]
        except (IOError, OSError) as exc:
            raise DeviceUnavailableError(f"cannot open RTL-SDR: {exc}") from exc
        self.dev.sample_rate = samp_rate
        if isinstance(gain, str) and gain == "auto":
            self.dev.gain = "auto"
        else:
            self.dev.gain = float(gain)

    @property
    def sample_rate(self) -> float:
        return float(self.dev.sample_rate)

    def tune(self, center_hz: float) -> None:
        self.dev.center_freq = center_hz

    def read(self, count: int) -> np.ndarray:
        return np.asarray(self.dev.read_samples(count), dtype=np.complex64)

    def flush(self, count: int) -> None:
        """Discard samples buffered before the last retune."""
        self.dev.read_samples(count)

    def close(self) -> None:
        self.dev.close()
