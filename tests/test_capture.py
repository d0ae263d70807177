import numpy as np
import pytest

from fakes import FakeSource
from cellsearch.capture.capbuf import FLUSH_LENGTH, Capture, capbuf_path
from cellsearch.dsp.threshold import FS_CAPTURE
from cellsearch.util.errors import CaptureError, ConfigurationError


def test_capbuf_path_uses_100khz_index(tmp_path) -> None:
    assert capbuf_path(tmp_path, 739e6).name == "capbuf_07390.npy"
    assert capbuf_path(tmp_path, 2.1456e9).name == "capbuf_21456.npy"


def test_live_capture_applies_correction() -> None:
    sources = []

    def factory(samp_rate):
        src = FakeSource(samp_rate)
        sources.append(src)
        return src

    cap = Capture(factory, correction=1.0001, capture_length=256)
    buf = cap.capture(739e6)
    cap.capture(739.1e6)
    assert buf.dtype == np.complex64
    assert buf.size == 256
    assert len(sources) == 1
    src = sources[0]
    assert src.samp_rate == pytest.approx(FS_CAPTURE * 1.0001)
    assert src.tuned == [pytest.approx(739e6 * 1.0001), pytest.approx(739.1e6 * 1.0001)]
    assert src.flushed == [FLUSH_LENGTH, FLUSH_LENGTH]
    cap.close()
    assert src.closed


def test_short_read_is_a_capture_error() -> None:
    cap = Capture(lambda sr: FakeSource(sr, short_by=10), capture_length=256)
    with pytest.raises(CaptureError):
        cap.capture(739e6)


def test_record_then_replay(tmp_path) -> None:
    recorder = Capture(lambda sr: FakeSource(sr), record=True, data_dir=tmp_path, capture_length=128)
    recorded = recorder.capture(739e6)
    assert capbuf_path(tmp_path, 739e6).exists()

    player = Capture(replay=True, data_dir=tmp_path)
    replayed = player.capture(739e6)
    assert np.array_equal(recorded, replayed)


def test_replay_missing_file(tmp_path) -> None:
    with pytest.raises(CaptureError):
        Capture(replay=True, data_dir=tmp_path).capture(739e6)


def test_record_and_replay_conflict(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        Capture(lambda sr: FakeSource(sr), record=True, replay=True, data_dir=tmp_path)


def test_live_capture_requires_source() -> None:
    with pytest.raises(ConfigurationError):
        Capture()


def test_nonpositive_correction_rejected() -> None:
    with pytest.raises(ConfigurationError):
        Capture(lambda sr: FakeSource(sr), correction=0.0)


def test_device_sample_rate_is_recorded() -> None:
    cap = Capture(lambda sr: FakeSource(sr, rate_error_hz=25.0), capture_length=64)
    assert cap.device_sample_rate is None
    cap.capture(739e6)
    assert cap.device_sample_rate == pytest.approx(FS_CAPTURE + 25.0)


def test_replay_never_opens_a_device(tmp_path) -> None:
    Capture(lambda sr: FakeSource(sr), record=True, data_dir=tmp_path, capture_length=64).capture(739e6)
    player = Capture(replay=True, data_dir=tmp_path)
    player.capture(739e6)
    assert player.device_sample_rate is None
    player.close()
