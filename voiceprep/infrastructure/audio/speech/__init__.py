"""Text-to-speech prompts."""

from .tts import SpeechPrompt, GoogleSpeechSynthesizer

__all__ = ["SpeechPrompt", "GoogleSpeechSynthesizer"]
