"""Infrastructure components for the interview engine.

Low-level services the session controller drives: audio capture and
playback, remote transcription and the LLM client.
"""

from .audio import AudioClip, AudioCapture, SpeechPrompt, GoogleSpeechSynthesizer
from .transcription import TranscriptionClient, TranscriptionOptions, TranscriptionResult, Word

__all__ = [
    # Audio
    "AudioClip", "AudioCapture", "SpeechPrompt", "GoogleSpeechSynthesizer",
    
    # Transcription
    "TranscriptionClient", "TranscriptionOptions", "TranscriptionResult", "Word"
]
