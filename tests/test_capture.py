import os
import time
import wave

import pytest

from voiceprep.errors import CaptureBusyError, DeviceUnavailableError
from voiceprep.infrastructure.audio import AudioCapture
from voiceprep.interview.testing import MockMicrophone, tone_frames


def make_capture(tmp_path, **kwargs):
    microphone = kwargs.pop("microphone", None) or MockMicrophone()
    return AudioCapture(microphone=microphone, output_dir=str(tmp_path), retry_delay=0.0, **kwargs)


def wav_files(tmp_path):
    return sorted(name for name in os.listdir(tmp_path) if name.endswith(".wav"))


def test_stop_without_start_returns_none(tmp_path):
    capture = make_capture(tmp_path)

    assert capture.stop() is None


def test_start_stop_produces_mono_clip_at_target_rate(tmp_path):
    capture = make_capture(tmp_path)

    raw_path = capture.start()
    assert raw_path.endswith("_raw.wav")
    assert capture.is_capturing
    clip = capture.stop()

    assert clip is not None
    assert clip.sample_rate == 16000
    assert clip.channels == 1
    assert clip.duration_seconds == pytest.approx(1.0, abs=0.01)
    assert clip.byte_length == os.path.getsize(clip.path)
    with wave.open(clip.path, "rb") as wf:
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == 16000
    # raw capture file is replaced by the finalized clip
    assert wav_files(tmp_path) == [os.path.basename(clip.path)]


def test_second_stop_is_a_noop(tmp_path):
    capture = make_capture(tmp_path)
    capture.start()

    assert capture.stop() is not None
    assert capture.stop() is None


def test_start_while_capturing_is_rejected(tmp_path):
    capture = make_capture(tmp_path)
    capture.start()

    with pytest.raises(CaptureBusyError):
        capture.start()

    capture.cancel()


def test_cancel_deletes_in_progress_file(tmp_path):
    capture = make_capture(tmp_path)
    path = capture.start()
    assert os.path.exists(path)

    capture.cancel()

    assert not os.path.exists(path)
    assert not capture.is_capturing
    assert wav_files(tmp_path) == []


def test_cancel_without_capture_is_harmless(tmp_path):
    make_capture(tmp_path).cancel()


def test_empty_recording_returns_none_and_removes_file(tmp_path):
    capture = make_capture(tmp_path, microphone=MockMicrophone(frames=[]))
    capture.start()

    assert capture.stop() is None
    assert wav_files(tmp_path) == []


def test_amplitude_is_zero_when_idle(tmp_path):
    capture = make_capture(tmp_path)

    assert capture.amplitude() == 0.0


def test_amplitude_reflects_input_level_while_capturing(tmp_path):
    capture = make_capture(tmp_path, microphone=MockMicrophone(frames=tone_frames(amplitude=0.5)))
    capture.start()

    level = capture.amplitude()

    assert 0.0 < level <= 1.0
    capture.cancel()
    assert capture.amplitude() == 0.0


def test_microphone_open_is_retried(tmp_path):
    microphone = MockMicrophone(fail_open=2)
    capture = make_capture(tmp_path, microphone=microphone, open_retries=3)

    capture.start()

    assert microphone.open_calls == 3
    assert capture.stop() is not None


def test_device_unavailable_after_retries_leaves_no_file(tmp_path):
    microphone = MockMicrophone(fail_open=10)
    capture = make_capture(tmp_path, microphone=microphone, open_retries=2)

    with pytest.raises(DeviceUnavailableError):
        capture.start()

    assert not capture.is_capturing
    assert wav_files(tmp_path) == []


def test_initialize_probes_device(tmp_path):
    with pytest.raises(DeviceUnavailableError):
        make_capture(tmp_path, microphone=MockMicrophone(fail_probe=True)).initialize()


def test_each_capture_gets_a_unique_file(tmp_path):
    capture = make_capture(tmp_path)
    first = capture.start()
    capture.stop()
    second = capture.start()
    capture.stop()

    assert first != second


def test_initialize_sweeps_stale_recordings(tmp_path):
    stale = tmp_path / "interview_audio_20240101_000000_deadbeef.wav"
    fresh = tmp_path / "interview_audio_20240102_000000_cafef00d_raw.wav"
    unrelated = tmp_path / "notes.wav"
    for path in (stale, fresh, unrelated):
        path.write_bytes(b"RIFF")
    two_days_ago = time.time() - 2 * 24 * 3600
    os.utime(stale, (two_days_ago, two_days_ago))
    os.utime(unrelated, (two_days_ago, two_days_ago))

    make_capture(tmp_path).initialize()

    assert wav_files(tmp_path) == ["interview_audio_20240102_000000_cafef00d_raw.wav", "notes.wav"]


def test_cleanup_skips_the_active_recording(tmp_path):
    capture = make_capture(tmp_path)
    active = capture.start()

    assert capture.cleanup_old_recordings(max_age_seconds=-1) == 0
    assert os.path.exists(active)
    capture.cancel()
