"""Unit and rounding helpers shared by the grid builder and the report."""

from __future__ import annotations

import math

import numpy as np


def db10(x):
    """Return 10 * log10(x) with floor to keep inputs positive."""
    return 10.0 * np.log10(np.maximum(x, 1e-20))


def round_half_up(x: float) -> float:
    """Round to the nearest integer, halves away from zero."""
    return math.copysign(math.floor(abs(x) + 0.5), x)


def snap_to_raster(freq_hz: float, raster_hz: float) -> float:
    """Return ``freq_hz`` rounded to the nearest multiple of ``raster_hz``."""
    return round_half_up(freq_hz / raster_hz) * raster_hz


def is_on_raster(freq_hz: float, raster_hz: float) -> bool:
    return freq_hz / raster_hz == round_half_up(freq_hz / raster_hz)
