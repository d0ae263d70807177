import json

import numpy as np
import pytest

from fakes import FakeKernels
from cellsearch.capture.capbuf import capbuf_path
from cellsearch.cli import main, parse_args
from cellsearch.sweep.config import SearchConfig
from cellsearch.sweep.runner import run_search
from cellsearch.util.exit_codes import ExitCode


def _record(data_dir, fc: float) -> None:
    np.save(capbuf_path(data_dir, fc), np.ones(2048, dtype=np.complex64))


def test_defaults() -> None:
    args = parse_args(["-s", "739e6"])
    config = SearchConfig.from_args(args)
    assert config.freq_start_hz == 739e6
    assert config.freq_end_hz is None
    assert config.ppm == 100.0
    assert config.correction == 1.0
    assert config.verbosity == 1
    assert config.gain == "auto"
    assert not config.record and not config.replay


def test_kernels_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("CELLSEARCH_KERNELS", "fakes:FakeKernels")
    config = SearchConfig.from_args(parse_args(["-s", "739e6"]))
    assert config.kernels == "fakes:FakeKernels"


def test_verbosity_flags() -> None:
    assert parse_args(["-s", "739e6", "-v"]).verbosity == 2
    assert parse_args(["-s", "739e6", "-b"]).verbosity == 0


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["-s", "500e3"],
        ["-s", "740e6", "-e", "739e6"],
        ["-s", "739e6", "-p", "-5"],
        ["-s", "739e6", "-c", "0"],
        ["-s", "739e6", "-r", "-l"],
        ["-s", "739e6", "-v", "-b"],
        ["-s", "739e6", "--gain", "loud"],
        ["-s", "739e6", "--max-peaks", "0"],
    ],
)
def test_invalid_arguments_exit_with_usage_error(argv) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code == ExitCode.INVALID_ARGS


def test_help_exits_nonzero(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["-h"])
    assert excinfo.value.code == ExitCode.HELP
    assert "correction factor" in capsys.readouterr().out


def test_replay_with_no_cells(tmp_path, capsys) -> None:
    _record(tmp_path, 739e6)
    code = main(["-s", "739e6", "-l", "-d", str(tmp_path), "--kernels", "fakes:FakeKernels", "-b"])
    assert code == ExitCode.SUCCESS
    assert "No LTE cells were found..." in capsys.readouterr().out


def test_replay_missing_capture(tmp_path, capsys) -> None:
    code = main(["-s", "739e6", "-l", "-d", str(tmp_path), "--kernels", "fakes:FakeKernels", "-b"])
    assert code == ExitCode.CAPTURE_FAILED
    assert "Capture failed: no recorded capture" in capsys.readouterr().err


def test_missing_backend(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("CELLSEARCH_KERNELS", raising=False)
    _record(tmp_path, 739e6)
    code = main(["-s", "739e6", "-l", "-d", str(tmp_path), "-b"])
    assert code == ExitCode.INVALID_ARGS


def test_run_search_json_output(tmp_path, capsys) -> None:
    _record(tmp_path, 739e6)
    config = SearchConfig(freq_start_hz=739e6, ppm=0, replay=True, data_dir=str(tmp_path), json_output=True)
    kernels = FakeKernels(peaks_by_fc={739e6: [(1, 100, 5.0, 1)]}, sss={(1, 100): 10})
    assert run_search(config, kernels=kernels) == ExitCode.SUCCESS
    records = json.loads(capsys.readouterr().out)
    assert len(records) == 1
    assert records[0]["cell_id"] == 31
    assert records[0]["n_rb_dl"] == 50
    assert records[0]["correction_factor"] == pytest.approx(1.0)


def test_run_search_table_output(tmp_path, capsys) -> None:
    _record(tmp_path, 739e6)
    config = SearchConfig(freq_start_hz=739e6, ppm=0, replay=True, data_dir=str(tmp_path))
    kernels = FakeKernels(peaks_by_fc={739e6: [(1, 100, 5.0, 1)]}, sss={(1, 100): 10})
    assert run_search(config, kernels=kernels) == ExitCode.SUCCESS
    out = capsys.readouterr().out
    assert "Detected the following cells:" in out
    assert "CrystalCorrectionFactor" in out
