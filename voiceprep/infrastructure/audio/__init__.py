"""
Audio capture, playback and speech prompts.

- hardware: PyAudio microphone backend and WAV player
- processing: signal processing and the answer recorder
- speech: text-to-speech prompts
"""

from .clip import AudioClip
from .processing import AudioCapture
from .speech import SpeechPrompt, GoogleSpeechSynthesizer

__all__ = ["AudioClip", "AudioCapture", "SpeechPrompt", "GoogleSpeechSynthesizer"]
