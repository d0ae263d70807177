import pytest

from fakes import confirmed_cell
from cellsearch.detection.types import Cell, CyclicPrefix, PhichDuration


def _peak(**kwargs) -> Cell:
    fields = dict(center_frequency_hz=739e6, peak_power=2.0, peak_index=7, primary_sync_id=2, coarse_offset_hz=5000.0)
    fields.update(kwargs)
    return Cell(**fields)


def test_identity_needs_secondary_sync() -> None:
    assert _peak().cell_identity is None
    assert _peak(secondary_sync_id=167).cell_identity == 503


def test_residual_offset_prefers_fine_estimate() -> None:
    assert _peak().residual_offset_hz == 5000.0
    assert _peak(fine_frequency_offset_hz=4870.5).residual_offset_hz == 4870.5
    assert _peak(fine_frequency_offset_hz=4870.5).corrected_frequency_hz == 739e6 + 4870.5


@pytest.mark.parametrize("kwargs", [{"primary_sync_id": 3}, {"primary_sync_id": -1}, {"secondary_sync_id": 168}])
def test_identity_ranges_are_enforced(kwargs) -> None:
    with pytest.raises(ValueError):
        _peak(**kwargs)


def test_confirmation_requires_mib() -> None:
    assert not _peak(secondary_sync_id=3).confirmed
    assert confirmed_cell().confirmed


def test_report_codes() -> None:
    assert CyclicPrefix.NORMAL.code == "N"
    assert CyclicPrefix.EXTENDED.code == "E"
    assert CyclicPrefix.UNKNOWN.code == "U"
    assert PhichDuration.UNKNOWN.code == "U"
