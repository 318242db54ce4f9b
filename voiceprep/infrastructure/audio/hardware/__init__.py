"""Audio device backends: PyAudio microphone input and WAV playback."""

from .microphone import PyAudioMicrophone, MicrophoneStream
from .speaker import WavPlayer, find_player

__all__ = ["PyAudioMicrophone", "MicrophoneStream", "WavPlayer", "find_player"]
