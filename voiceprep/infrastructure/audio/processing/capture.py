"""
Answer recording with start/stop/cancel lifecycle and amplitude sampling.
"""
import os
import time
import uuid
import wave
import logging
import tempfile
import threading
from typing import Optional

from ....config import (
    SAMPLE_RATE_CAPTURE, SAMPLE_RATE_TARGET, FRAME_MS,
    TARGET_RMS, MIN_CLIP_BYTES, MIC_OPEN_RETRIES, RECORDING_MAX_AGE_SECONDS
)
from ....errors import CaptureBusyError, DeviceUnavailableError
from ..clip import AudioClip
from .processing import (
    stereo_to_mono, remove_dc, resample, normalize_audio, pcm16_to_float,
    float_to_pcm16, rms_level, read_wav, write_wav
)

logger = logging.getLogger("audio_capture")


class AudioCapture:
    """
    Records one answer at a time to a uniquely named WAV file.

    Frames arrive on the backend's audio thread and are appended to a raw
    capture file. stop() converts that file to mono PCM16 at the target
    rate, which is the format the transcription service expects.
    """

    def __init__(self,
                 microphone=None,
                 output_dir: Optional[str] = None,
                 sr_capture: int = SAMPLE_RATE_CAPTURE,
                 sr_target: int = SAMPLE_RATE_TARGET,
                 frame_ms: int = FRAME_MS,
                 target_rms: float = TARGET_RMS,
                 min_clip_bytes: int = MIN_CLIP_BYTES,
                 open_retries: int = MIC_OPEN_RETRIES,
                 retry_delay: float = 0.5):
        if microphone is None:
            from ..hardware import PyAudioMicrophone
            microphone = PyAudioMicrophone()
        self.microphone = microphone
        self.output_dir = output_dir or tempfile.gettempdir()
        self.sr_capture = sr_capture
        self.sr_target = sr_target
        self.frame_size = int(sr_capture * frame_ms / 1000)
        self.target_rms = target_rms
        self.min_clip_bytes = min_clip_bytes
        self.open_retries = max(1, open_retries)
        self.retry_delay = retry_delay

        self._lock = threading.Lock()
        self._writer: Optional[wave.Wave_write] = None
        self._stream = None
        self._path: Optional[str] = None
        self._frames_written = 0
        self._io_error: Optional[Exception] = None
        self._level = 0.0
        self._initialized = False

    @property
    def is_capturing(self) -> bool:
        with self._lock:
            return self._path is not None

    @property
    def current_path(self) -> Optional[str]:
        with self._lock:
            return self._path

    def initialize(self) -> None:
        """
        Probe the input device once before a session starts and sweep
        recordings left over from earlier runs.

        Raises:
            DeviceUnavailableError: Microphone missing or permission denied
        """
        os.makedirs(self.output_dir, exist_ok=True)
        self.cleanup_old_recordings()
        self.microphone.probe()
        self._initialized = True
        logger.info("Audio capture initialized")

    def start(self) -> str:
        """
        Begin recording to a new file.

        Returns:
            Path of the in-progress recording

        Raises:
            CaptureBusyError: A capture is already active
            DeviceUnavailableError: The microphone could not be opened
        """
        timestamp = int(time.time() * 1000)
        path = os.path.join(self.output_dir, f"interview_audio_{timestamp}_{uuid.uuid4().hex[:8]}_raw.wav")

        with self._lock:
            if self._path is not None:
                raise CaptureBusyError(f"Capture already active: {self._path}")
            try:
                writer = wave.open(path, "wb")
                writer.setnchannels(1)
                writer.setsampwidth(2)
                writer.setframerate(self.sr_capture)
            except OSError as e:
                raise DeviceUnavailableError(f"Cannot create recording file {path}: {e}") from e
            self._writer = writer
            self._path = path
            self._frames_written = 0
            self._io_error = None
            self._level = 0.0

        stream = None
        for attempt in range(self.open_retries):
            try:
                if attempt > 0:
                    logger.info(f"Retry attempt {attempt + 1}/{self.open_retries}")
                    time.sleep(self.retry_delay)
                stream = self.microphone.open(self.sr_capture, 1, self.frame_size, self._on_frames)
                break
            except DeviceUnavailableError as e:
                logger.error(f"Attempt {attempt + 1} failed to open microphone: {e}")
                if attempt == self.open_retries - 1:
                    self._abandon()
                    raise

        with self._lock:
            cancelled = self._path != path
            if not cancelled:
                self._stream = stream
        if cancelled:
            logger.info("Capture cancelled while the microphone was opening")
            stream.close()
            return path

        logger.info(f"Recording started: {path}")
        return path

    def _on_frames(self, data: bytes) -> None:
        with self._lock:
            if self._writer is None:
                return
            try:
                self._writer.writeframes(data)
                self._frames_written += len(data) // 2
            except OSError as e:
                if self._io_error is None:
                    logger.error(f"Write failed during capture: {e}")
                self._io_error = e
            self._level = rms_level(data)

    def amplitude(self) -> float:
        """Instantaneous input level in [0, 1]; 0 when not capturing."""
        with self._lock:
            if self._path is None:
                return 0.0
            return max(0.0, min(1.0, self._level))

    def _detach(self):
        """Take ownership of the active stream/writer/path and clear state."""
        with self._lock:
            stream, writer, path = self._stream, self._writer, self._path
            frames, io_error = self._frames_written, self._io_error
            self._stream = None
            self._writer = None
            self._path = None
            self._level = 0.0
        return stream, writer, path, frames, io_error

    def _abandon(self) -> None:
        _, writer, path, _, _ = self._detach()
        if writer is not None:
            try:
                writer.close()
            except OSError:
                pass
        if path:
            _remove_quietly(path)

    def stop(self) -> Optional[AudioClip]:
        """
        Finalize the active recording.

        Returns:
            AudioClip, or None when nothing was recording or the file is
            empty or unreadable. Never raises for I/O problems.
        """
        stream, writer, path, frames, io_error = self._detach()
        if path is None:
            logger.debug("stop() called with no active capture")
            return None

        # Closing the stream waits for the in-flight callback, so it
        # must happen without holding the lock.
        if stream is not None:
            try:
                stream.close()
            except Exception as e:
                logger.warning(f"Error closing microphone stream: {e}")

        try:
            writer.close()
        except OSError as e:
            io_error = io_error or e

        if io_error is not None or frames == 0:
            if io_error is None:
                logger.warning("No audio captured")
            _remove_quietly(path)
            return None

        try:
            return self._finalize(path)
        except (OSError, EOFError, wave.Error, ValueError) as e:
            logger.error(f"Failed to finalize recording {path}: {e}")
            _remove_quietly(path)
            return None

    def _finalize(self, raw_path: str) -> Optional[AudioClip]:
        pcm, sr, channels = read_wav(raw_path)
        samples = pcm16_to_float(pcm, channels)
        if samples.size == 0:
            _remove_quietly(raw_path)
            return None

        if samples.ndim > 1:
            samples = stereo_to_mono(samples)
        mono = remove_dc(samples)
        mono = resample(mono, sr, self.sr_target)
        mono = normalize_audio(mono, self.target_rms)
        pcm16 = float_to_pcm16(mono)

        final_path = raw_path.replace("_raw.wav", ".wav")
        write_wav(final_path, pcm16, self.sr_target, channels=1)
        _remove_quietly(raw_path)

        byte_length = os.path.getsize(final_path)
        duration = len(pcm16) / float(self.sr_target)
        if byte_length < self.min_clip_bytes:
            logger.warning(f"Recording is very small ({byte_length} bytes); it may be empty")
        logger.info(f"Recording finalized: {final_path} ({duration:.1f}s, {byte_length} bytes)")
        return AudioClip(
            path=final_path,
            byte_length=byte_length,
            sample_rate=self.sr_target,
            channels=1,
            duration_seconds=duration,
        )

    def cancel(self) -> None:
        """Stop recording and delete the in-progress file."""
        stream, writer, path, _, _ = self._detach()
        if path is None:
            return
        if stream is not None:
            try:
                stream.close()
            except Exception as e:
                logger.warning(f"Error closing microphone stream: {e}")
        if writer is not None:
            try:
                writer.close()
            except OSError:
                pass
        _remove_quietly(path)
        logger.info(f"Recording cancelled: {path}")

    def cleanup_old_recordings(self, max_age_seconds: float = RECORDING_MAX_AGE_SECONDS) -> int:
        """Delete leftover recordings older than max_age_seconds."""
        removed = 0
        cutoff = time.time() - max_age_seconds
        active = self.current_path
        for name in os.listdir(self.output_dir):
            if not (name.startswith("interview_audio_") and name.endswith(".wav")):
                continue
            path = os.path.join(self.output_dir, name)
            if path == active:
                continue
            try:
                if os.path.getmtime(path) < cutoff:
                    os.remove(path)
                    removed += 1
            except OSError as e:
                logger.warning(f"Could not remove old recording {path}: {e}")
        if removed:
            logger.info(f"Removed {removed} old recordings")
        return removed


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not delete {path}: {e}")
