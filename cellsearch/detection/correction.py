"""Crystal correction factor refinement from a confirmed cell."""

from __future__ import annotations

from cellsearch.detection.types import Cell


def refine_correction(previous_correction: float, true_frequency_hz: float, residual_offset_hz: float) -> float:
    """Return the correction factor that would have removed ``residual_offset_hz``.

    The receiver was tuned to ``true_frequency_hz * previous_correction``
    but actually sat at ``true_frequency_hz - residual_offset_hz``.
    """
    if previous_correction <= 0:
        raise ValueError("previous correction factor must be positive")
    crystal_freq_actual = float(true_frequency_hz) - float(residual_offset_hz)
    if crystal_freq_actual == 0:
        raise ValueError("residual offset cancels the carrier frequency")
    return float(previous_correction) * (float(true_frequency_hz) / crystal_freq_actual)


def correction_for_cell(cell: Cell, previous_correction: float) -> float:
    """Refined correction factor, taking the cell's center frequency as the true carrier.

    Valid only for a confirmed cell: until the MIB has been decoded the
    detection may be an alias, and its nominal frequency says nothing
    about where the carrier really is.
    """
    if not cell.confirmed:
        raise ValueError("correction factor can only be derived from a confirmed cell")
    return refine_correction(previous_correction, cell.center_frequency_hz, cell.residual_offset_hz)
