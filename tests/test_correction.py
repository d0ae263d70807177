import pytest

from fakes import confirmed_cell
from cellsearch.detection.correction import correction_for_cell, refine_correction
from cellsearch.detection.types import Cell


def test_positive_residual_raises_the_factor() -> None:
    assert refine_correction(1.0, 1e9, 100.0) == pytest.approx(1e9 / (1e9 - 100.0), rel=1e-15)
    assert refine_correction(1.0, 1e9, 100.0) > 1.0


def test_zero_residual_keeps_previous_factor() -> None:
    assert refine_correction(1.00002, 739e6, 0.0) == 1.00002


def test_previous_factor_scales_result() -> None:
    base = refine_correction(1.0, 739e6, -350.0)
    assert refine_correction(1.0001, 739e6, -350.0) == pytest.approx(1.0001 * base)


def test_invalid_inputs() -> None:
    with pytest.raises(ValueError):
        refine_correction(0.0, 739e6, 10.0)
    with pytest.raises(ValueError):
        refine_correction(1.0, 739e6, 739e6)


def test_cell_uses_fine_offset() -> None:
    cell = confirmed_cell(1e9, offset_hz=100.0)
    assert correction_for_cell(cell, 1.0) == pytest.approx(1e9 / (1e9 - 100.0))


def test_unconfirmed_cell_is_refused() -> None:
    peak = Cell(center_frequency_hz=1e9, peak_power=1.0, peak_index=0, primary_sync_id=0, coarse_offset_hz=100.0)
    with pytest.raises(ValueError):
        correction_for_cell(peak, 1.0)
