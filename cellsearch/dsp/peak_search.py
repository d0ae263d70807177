"""Greedy peak search over collapsed PSS correlation power."""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from cellsearch.detection.types import N_ID_2_COUNT, Cell

# Twice the PSS correlator length: sidelobes of a peak stay within this radius.
PEAK_SUPPRESSION_SAMPLES = 274


def peak_search(
    power: np.ndarray,
    offset_index: np.ndarray,
    thresholds: np.ndarray,
    offsets_hz: np.ndarray,
    center_frequency_hz: float,
    *,
    suppression: int = PEAK_SUPPRESSION_SAMPLES,
    max_peaks: Optional[int] = None,
) -> List[Cell]:
    """Return one candidate per distinct correlation peak above threshold.

    ``power`` and ``offset_index`` are ``(3, N)`` arrays indexed by N_id_2
    and sample position within the half frame; ``thresholds`` has one entry
    per sample position. Peaks are emitted strongest first. After each one,
    every N_id_2 row is cleared within ``suppression`` samples (circularly)
    so sidelobes and the other PSS hypotheses at the same timing are not
    reported again.
    """
    power = np.asarray(power, dtype=np.float64)
    offset_index = np.asarray(offset_index)
    thresholds = np.asarray(thresholds, dtype=np.float64).reshape(-1)
    offsets_hz = np.asarray(offsets_hz, dtype=np.float64)
    if power.ndim != 2 or power.shape[0] != N_ID_2_COUNT:
        raise ValueError(f"power must have shape (3, N), got {power.shape}")
    if offset_index.shape != power.shape:
        raise ValueError("offset_index must have the same shape as power")
    n_samples = power.shape[1]
    if n_samples == 0:
        return []
    if thresholds.size not in (1, n_samples):
        raise ValueError("thresholds must be a scalar or have one entry per sample")

    working = np.where(power > thresholds[np.newaxis, :], power, 0.0)
    cells: List[Cell] = []
    radius = max(0, int(suppression))
    while max_peaks is None or len(cells) < max_peaks:
        flat_idx = int(np.argmax(working))
        n_id_2, peak_idx = np.unravel_index(flat_idx, working.shape)
        peak_pow = float(working[n_id_2, peak_idx])
        if peak_pow <= 0.0:
            break
        cells.append(
            Cell(
                center_frequency_hz=float(center_frequency_hz),
                peak_power=peak_pow,
                peak_index=int(peak_idx),
                primary_sync_id=int(n_id_2),
                coarse_offset_hz=float(offsets_hz[int(offset_index[n_id_2, peak_idx])]),
            )
        )
        cols = np.arange(int(peak_idx) - radius, int(peak_idx) + radius + 1) % n_samples
        working[:, cols] = 0.0
    return cells
