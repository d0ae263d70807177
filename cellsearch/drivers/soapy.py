"""SoapySDR-backed capture source."""

from __future__ import annotations

import time
from typing import Dict, List, Optional

import numpy as np

from cellsearch.util.errors import DeviceUnavailableError

try:  # pragma: no cover - optional dependency
    import SoapySDR  # type: ignore
    from SoapySDR import SOAPY_SDR_CF32, SOAPY_SDR_RX  # type: ignore

    HAVE_SOAPY = True
except ImportError:  # pragma: no cover - optional dependency
    HAVE_SOAPY = False
    SoapySDR = None  # type: ignore
    SOAPY_SDR_CF32 = 0  # type: ignore
    SOAPY_SDR_RX = 0  # type: ignore

# Samples requested per readStream call.
READ_CHUNK = 8192
# Consecutive empty reads tolerated before the stream is declared dead.
MAX_EMPTY_READS = 5000


def parse_soapy_args(text: Optional[str]) -> Optional[Dict[str, str]]:
    """Parse 'serial=00000001,index=0' into a dict (None for empty input)."""
    if not text:
        return None
    parsed: Dict[str, str] = {}
    for kv in str(text).split(","):
        if "=" in kv:
            k, v = kv.split("=", 1)
            parsed[k.strip()] = v.strip()
    return parsed


class SDRSource:
    """Thin convenience wrapper around SoapySDR.Device."""

    def __init__(self, driver: str, samp_rate: float, gain: str | float, soapy_args: Optional[Dict[str, str]] = None):
        if not HAVE_SOAPY:
            raise DeviceUnavailableError("SoapySDR not available")
        dev_args: Dict[str, str] = {"driver": driver}
        if soapy_args:
            dev_args.update({str(k): str(v) for k, v in soapy_args.items()})
        self.device = f"SoapySDR ({driver})"
        self.dev = SoapySDR.Device(dev_args)  # type: ignore[call-arg]
        self.dev.setSampleRate(SOAPY_SDR_RX, 0, samp_rate)
        if isinstance(gain, str) and gain == "auto":
            self.dev.setGainMode(SOAPY_SDR_RX, 0, True)
        else:
            self.dev.setGain(SOAPY_SDR_RX, 0, float(gain))
        self.stream = self.dev.setupStream(SOAPY_SDR_RX, SOAPY_SDR_CF32)
        self.dev.activateStream(self.stream)

    @property
    def sample_rate(self) -> float:
        return float(self.dev.getSampleRate(SOAPY_SDR_RX, 0))

    def tune(self, center_hz: float) -> None:
        self.dev.setFrequency(SOAPY_SDR_RX, 0, center_hz)

    def read(self, count: int) -> np.ndarray:
        if count <= 0:
            return np.zeros(0, dtype=np.complex64)
        buffs: List[np.ndarray] = []
        got = 0
        empty_reads = 0
        while got < count:
            sr = int(min(READ_CHUNK, count - got))
            buff = np.empty(sr, dtype=np.complex64)
            st = self.dev.readStream(self.stream, [buff], sr)
            n = getattr(st, "ret", st)
            if isinstance(n, tuple):
                n = n[0]
            if isinstance(n, (list, np.ndarray)):
                n = int(n[0])
            if int(n) > 0:
                buffs.append(buff[: int(n)])
                got += int(n)
                empty_reads = 0
            else:
                empty_reads += 1
                if empty_reads > MAX_EMPTY_READS:
                    raise DeviceUnavailableError(f"{self.device} stopped delivering samples")
                time.sleep(0.001)
        return np.concatenate(buffs)

    def flush(self, count: int) -> None:
        """Discard samples buffered before the last retune."""
        self.read(count)

    def close(self) -> None:
        self.dev.deactivateStream(self.stream)
        self.dev.closeStream(self.stream)
