import json

import numpy as np
import pytest

from fakes import FakeKernels, FakeSource
from cellsearch.capture.capbuf import Capture
from cellsearch.sweep.config import SearchConfig
from cellsearch.sweep.sweeper import CellSweeper
from cellsearch.util.scan_logger import ScanLogger

F0 = 739e6
F1 = 739.1e6


def _sweeper(kernels, scan_logger=None, **config_kwargs):
    config = SearchConfig(freq_start_hz=F0, freq_end_hz=F1, ppm=0, **config_kwargs)
    grid = config.validate()
    capture = Capture(lambda sr: FakeSource(sr), capture_length=512)
    return CellSweeper(config, grid, capture, kernels, scan_logger=scan_logger)


def test_adjacent_center_frequencies_collapse_to_one_cell() -> None:
    kernels = FakeKernels(
        peaks_by_fc={
            F0: [(1, 100, 5.0, 1)],
            F1: [(1, 100, 8.0, 0), (2, 5000, 3.0, 1)],
        },
        sss={(1, 100): 10, (2, 5000): 20},
    )
    result = _sweeper(kernels).run()
    assert [len(cells) for cells in result.detected] == [1, 2]
    assert result.confirmed_total == 3
    assert result.peaks_examined == 3
    assert [c.cell_identity for c in result.cells] == [31, 62]
    strongest = result.cells[0]
    assert strongest.center_frequency_hz == F1
    assert strongest.peak_power == 8.0
    assert strongest.coarse_offset_hz == -5000.0


def test_no_peaks_gives_empty_result() -> None:
    result = _sweeper(FakeKernels()).run()
    assert result.cells == []
    assert result.detected == [[], []]


def test_degenerate_noise_skips_center(tmp_path) -> None:
    path = tmp_path / "scan.jsonl"
    kernels = FakeKernels(peaks_by_fc={F0: [(1, 100, 5.0, 1)]}, sss={(1, 100): 10}, noise=0.0)
    result = _sweeper(kernels, scan_logger=ScanLogger(path)).run()
    assert result.cells == []
    assert "sss_detect" not in kernels.calls
    events = [json.loads(line)["event"] for line in path.read_text().splitlines()]
    assert events.count("center_skipped") == 2
    assert events[0] == "search_start"
    assert events[-1] == "search_done"


def test_max_peaks_limits_candidates() -> None:
    kernels = FakeKernels(
        peaks_by_fc={F0: [(0, 100, 9.0, 1), (1, 3000, 8.0, 1), (2, 6000, 7.0, 1)]},
        sss={(0, 100): 1, (1, 3000): 2, (2, 6000): 3},
    )
    result = _sweeper(kernels, max_peaks=2).run()
    assert result.peaks_examined == 2
    assert [c.cell_identity for c in result.cells] == [3, 7]


@pytest.mark.parametrize("fa_per_search,expected", [(False, 1), (True, 3)])
def test_false_alarm_hypotheses(fa_per_search, expected) -> None:
    sweeper = _sweeper(FakeKernels(), fa_per_search=fa_per_search)
    assert sweeper._n_hypotheses() == expected


def test_backend_peak_search_is_preferred() -> None:
    class _Kernels(FakeKernels):
        def __init__(self):
            super().__init__()
            self.searched = []

        def correlate(self, capbuf, offsets_hz, comb_arm, center_frequency_hz):
            corr = super().correlate(capbuf, offsets_hz, comb_arm, center_frequency_hz)
            corr.intermediates["xc_incoherent_single"] = np.zeros((3, 4))
            return corr

        def peak_search(self, power, offset_index, thresholds, offsets_hz, fc, *, intermediates, max_peaks=None):
            self.searched.append((fc, sorted(intermediates), max_peaks))
            return []

    kernels = _Kernels()
    _sweeper(kernels, max_peaks=4).run()
    assert kernels.searched == [
        (F0, ["xc_incoherent_single"], 4),
        (F1, ["xc_incoherent_single"], 4),
    ]
