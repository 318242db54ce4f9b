"""Audio processing and capture modules."""

from .processing import (
    stereo_to_mono,
    remove_dc,
    resample,
    normalize_audio,
    pcm16_to_float,
    float_to_pcm16,
    rms_level,
    read_wav,
    write_wav
)
from .capture import AudioCapture

__all__ = [
    "AudioCapture",
    "stereo_to_mono",
    "remove_dc",
    "resample",
    "normalize_audio",
    "pcm16_to_float",
    "float_to_pcm16",
    "rms_level",
    "read_wav",
    "write_wav"
]
