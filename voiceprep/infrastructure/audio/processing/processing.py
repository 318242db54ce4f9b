"""
Basic audio processing functions including format conversions and normalization.
"""
import wave
from math import gcd
from typing import Tuple

import numpy as np
from scipy.signal import resample_poly

from ....config import TARGET_RMS


def stereo_to_mono(x: np.ndarray) -> np.ndarray:
    """Convert multi-channel audio to mono by averaging channels."""
    return np.mean(x, axis=1)


def remove_dc(x: np.ndarray) -> np.ndarray:
    """Remove DC offset from audio signal."""
    if x.size == 0:
        return x
    return x - np.mean(x)


def resample(x: np.ndarray, sr_from: int, sr_to: int) -> np.ndarray:
    """Resample with a polyphase filter; 48k -> 16k is up=1, down=3."""
    if sr_from == sr_to:
        return x.astype(np.float32)
    g = gcd(sr_from, sr_to)
    return resample_poly(x, up=sr_to // g, down=sr_from // g).astype(np.float32)


def normalize_audio(audio: np.ndarray, target_rms: float = TARGET_RMS) -> np.ndarray:
    """Normalize audio to target RMS level."""
    if audio.size == 0:
        return audio
    rms = float(np.sqrt(np.mean(audio**2)) + 1e-9)
    gain = min(20.0, target_rms / rms)
    return audio * gain


def pcm16_to_float(pcm: bytes, channels: int = 1) -> np.ndarray:
    """Decode interleaved PCM16 bytes into float32 samples in [-1, 1]."""
    samples = np.frombuffer(pcm, dtype=np.int16).astype(np.float32) / 32768.0
    if channels > 1:
        samples = samples[: len(samples) - len(samples) % channels].reshape(-1, channels)
    return samples


def float_to_pcm16(x: np.ndarray) -> np.ndarray:
    return np.clip(x * 32767, -32768, 32767).astype(np.int16)


def rms_level(pcm: bytes) -> float:
    """RMS of a PCM16 chunk scaled to [0, 1]."""
    if len(pcm) < 2:
        return 0.0
    samples = pcm16_to_float(pcm)
    level = float(np.sqrt(np.mean(samples**2)))
    return max(0.0, min(1.0, level))


def read_wav(path: str) -> Tuple[bytes, int, int]:
    """Return (frames, sample_rate, channels) of a PCM16 WAV file."""
    with wave.open(path, "rb") as wf:
        return wf.readframes(wf.getnframes()), wf.getframerate(), wf.getnchannels()


def write_wav(path: str, pcm16: np.ndarray, sr: int, channels: int = 1) -> None:
    """Write PCM16 audio data to WAV file."""
    with wave.open(path, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sr)
        wf.writeframes(pcm16.tobytes())
