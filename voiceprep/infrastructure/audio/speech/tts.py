"""
Text-to-speech prompts using Google Cloud TTS.
"""
import os
import tempfile
import logging
import threading
from concurrent.futures import Future
from typing import Optional

from ....config import TTS_VOICE, LANGUAGE_CODE, TTS_SAMPLE_RATE
from ....errors import SpeechPlaybackError

logger = logging.getLogger("speech_tts")


class GoogleSpeechSynthesizer:
    """Synthesizes LINEAR16 WAV audio with Google Cloud Text-to-Speech."""

    def __init__(self,
                 voice: str = TTS_VOICE,
                 language_code: str = LANGUAGE_CODE,
                 sample_rate: int = TTS_SAMPLE_RATE):
        self.voice = voice
        self.language_code = language_code
        self.sample_rate = sample_rate
        self._client = None
        self._texttospeech = None

    def initialize(self) -> None:
        if self._client is not None:
            return
        try:
            from google.cloud import texttospeech
            self._client = texttospeech.TextToSpeechClient()
        except Exception as e:
            raise SpeechPlaybackError(f"Google TTS unavailable: {e}") from e
        self._texttospeech = texttospeech
        logger.info(f"Google TTS ready with voice {self.voice}")

    def synthesize(self, text: str) -> bytes:
        """Return WAV bytes (LINEAR16 includes the RIFF header)."""
        self.initialize()
        tts = self._texttospeech
        response = self._client.synthesize_speech(
            input=tts.SynthesisInput(text=text),
            voice=tts.VoiceSelectionParams(language_code=self.language_code, name=self.voice),
            audio_config=tts.AudioConfig(
                audio_encoding=tts.AudioEncoding.LINEAR16,
                sample_rate_hertz=self.sample_rate,
            ),
        )
        return response.audio_content


class SpeechPrompt:
    """
    Speaks one prompt at a time.

    Every call gets its own Future that resolves exactly once: True when
    playback finished, False when it was interrupted by stop() or by a
    newer speak(). Synthesis or playback failures resolve it with
    SpeechPlaybackError.
    """

    def __init__(self,
                 use_tts: bool = True,
                 synthesizer: Optional[GoogleSpeechSynthesizer] = None,
                 player=None,
                 prefix: str = "🤖"):
        self.use_tts = use_tts
        self.synthesizer = synthesizer or GoogleSpeechSynthesizer()
        if player is None:
            from ..hardware import WavPlayer
            player = WavPlayer()
        self.player = player
        self.prefix = prefix

        self._lock = threading.Lock()
        self._current: Optional[Future] = None
        self._interrupted: Optional[threading.Event] = None

    @property
    def is_speaking(self) -> bool:
        with self._lock:
            return self._current is not None and not self._current.done()

    def initialize(self) -> None:
        """
        Prepare synthesis and playback.

        Raises:
            SpeechPlaybackError: TTS is enabled but cannot be reached
        """
        if not self.use_tts:
            logger.info("Speech prompt in text mode")
            return
        self.synthesizer.initialize()
        if not self.player.available:
            logger.warning("No audio player found; prompts will be printed")

    def speak_async(self, text: str) -> Future:
        """Start speaking and return the completion future for this call."""
        future: Future = Future()
        interrupted = threading.Event()
        with self._lock:
            self._interrupt_locked()
            self._current = future
            self._interrupted = interrupted

        if not text.strip():
            _settle(future, True)
            return future

        if not self.use_tts or not self.player.available:
            print(f"{self.prefix} {text}")
            _settle(future, True)
            return future

        worker = threading.Thread(
            target=self._speak_worker, args=(text, future, interrupted),
            name="speech-prompt", daemon=True,
        )
        worker.start()
        return future

    def speak(self, text: str) -> bool:
        """
        Speak text and block until the utterance ends.

        Returns:
            True if playback completed, False if it was interrupted

        Raises:
            SpeechPlaybackError: If synthesis or playback failed
        """
        return self.speak_async(text).result()

    def stop(self) -> None:
        """Interrupt the current utterance, if any."""
        with self._lock:
            self._interrupt_locked()

    def _interrupt_locked(self) -> None:
        if self._interrupted is not None:
            self._interrupted.set()
        if self._current is not None and not self._current.done():
            self.player.stop()
            _settle(self._current, False)
        self._current = None
        self._interrupted = None

    def _speak_worker(self, text: str, future: Future, interrupted: threading.Event) -> None:
        wav_path = None
        try:
            audio = self.synthesizer.synthesize(text)
            if interrupted.is_set():
                return
            with tempfile.NamedTemporaryFile(suffix=".wav", delete=False) as tmp_file:
                wav_path = tmp_file.name
                tmp_file.write(audio)

            with self._lock:
                if interrupted.is_set():
                    return
                process = self.player.play(wav_path)
            returncode = self.player.wait(process)

            if interrupted.is_set():
                _settle(future, False)
            elif returncode != 0:
                raise SpeechPlaybackError(f"Audio player exited with code {returncode}")
            else:
                _settle(future, True)
        except SpeechPlaybackError as e:
            logger.error(f"Speech playback failed: {e}")
            _settle_error(future, e)
        except Exception as e:
            logger.error(f"Google TTS failed: {e}")
            err = SpeechPlaybackError(str(e))
            err.__cause__ = e
            _settle_error(future, err)
        finally:
            if wav_path:
                try:
                    os.unlink(wav_path)
                except OSError:
                    pass


_settle_lock = threading.Lock()


def _settle(future: Future, value: bool) -> None:
    with _settle_lock:
        if not future.done():
            future.set_result(value)


def _settle_error(future: Future, error: Exception) -> None:
    with _settle_lock:
        if not future.done():
            future.set_exception(error)
