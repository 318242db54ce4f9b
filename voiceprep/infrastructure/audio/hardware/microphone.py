"""
PyAudio microphone backend.

PyAudio is imported lazily so the rest of the package works on machines
without PortAudio (tests, text-only runs).
"""
import logging
from typing import Callable, Optional

from ....errors import DeviceUnavailableError
from ....utils import with_suppressed_audio_warnings

logger = logging.getLogger("microphone")

FrameCallback = Callable[[bytes], None]


def _load_pyaudio():
    try:
        import pyaudio
    except ImportError as e:
        raise DeviceUnavailableError(f"PyAudio is not installed: {e}") from e
    return pyaudio


class MicrophoneStream:
    """An open PyAudio input stream delivering PCM16 chunks to a callback."""

    def __init__(self, pa, stream):
        self._pa = pa
        self._stream = stream

    def close(self) -> None:
        try:
            if self._stream.is_active():
                self._stream.stop_stream()
            self._stream.close()
        finally:
            self._pa.terminate()


class PyAudioMicrophone:
    """Opens callback-mode PCM16 input streams on one input device."""

    def __init__(self, device_index: Optional[int] = None):
        self.device_index = device_index

    @with_suppressed_audio_warnings
    def probe(self) -> dict:
        """
        Check that an input device exists and return its info.
        
        Raises:
            DeviceUnavailableError: No usable input device
        """
        pyaudio = _load_pyaudio()
        pa = pyaudio.PyAudio()
        try:
            if self.device_index is None:
                info = pa.get_default_input_device_info()
            else:
                info = pa.get_device_info_by_index(self.device_index)
        except (IOError, OSError) as e:
            raise DeviceUnavailableError(f"No input device available: {e}") from e
        finally:
            pa.terminate()

        if int(info.get("maxInputChannels", 0)) < 1:
            raise DeviceUnavailableError(f"Device {info.get('name')} has no input channels")
        logger.info(f"Input device: {info.get('name')} (default rate {info.get('defaultSampleRate')})")
        return info

    @with_suppressed_audio_warnings
    def open(self, sample_rate: int, channels: int, frames_per_buffer: int,
             on_frames: FrameCallback) -> MicrophoneStream:
        """Open and start an input stream; each chunk is passed to on_frames."""
        pyaudio = _load_pyaudio()
        pa = pyaudio.PyAudio()

        def callback(in_data, frame_count, time_info, status):
            if status:
                logger.debug(f"PortAudio input status flags: {status}")
            on_frames(in_data)
            return (None, pyaudio.paContinue)

        try:
            stream = pa.open(
                format=pyaudio.paInt16,
                channels=channels,
                rate=sample_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=frames_per_buffer,
                stream_callback=callback,
            )
            stream.start_stream()
        except (IOError, OSError) as e:
            pa.terminate()
            raise DeviceUnavailableError(f"Could not open microphone: {e}") from e

        return MicrophoneStream(pa, stream)
