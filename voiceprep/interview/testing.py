"""
Testing infrastructure with mock services for the interview system.
"""
import shutil
import tempfile
import threading
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ..errors import DeviceUnavailableError, SpeechPlaybackError
from ..infrastructure.audio.processing import AudioCapture
from ..infrastructure.transcription import TranscriptionResult, Word
from .events import EventType
from .models import AnswerScore, AnsweredQuestion, JobRole, Question, SessionStatus
from .orchestrator import InterviewSessionController
from .services import AnswerScorer, InMemorySessionStore


def tone_frames(seconds: float = 1.0, sample_rate: int = 48000, frame_size: int = 1440,
                freq: float = 440.0, amplitude: float = 0.3) -> List[bytes]:
    """PCM16 sine tone split into microphone-sized chunks."""
    t = np.arange(int(seconds * sample_rate)) / float(sample_rate)
    pcm = (amplitude * np.sin(2 * np.pi * freq * t) * 32767).astype(np.int16).tobytes()
    step = frame_size * 2
    return [pcm[i:i + step] for i in range(0, len(pcm), step)]


class MockStream:
    def __init__(self):
        self.closed = False

    def close(self) -> None:
        self.closed = True


class MockMicrophone:
    """
    Stand-in for PyAudioMicrophone.

    open() delivers all configured frames synchronously, so a capture
    has its audio as soon as start() returns.
    """

    def __init__(self, frames: Optional[List[bytes]] = None,
                 fail_probe: bool = False, fail_open: int = 0):
        self.frames = tone_frames() if frames is None else frames
        self.fail_probe = fail_probe
        self.fail_open = fail_open
        self.open_calls = 0
        self.streams: List[MockStream] = []

    def probe(self) -> dict:
        if self.fail_probe:
            raise DeviceUnavailableError("Microphone permission denied [MOCK]")
        return {"name": "mock microphone", "maxInputChannels": 1, "defaultSampleRate": 48000}

    def open(self, sample_rate, channels, frames_per_buffer, on_frames) -> MockStream:
        self.open_calls += 1
        if self.open_calls <= self.fail_open:
            raise DeviceUnavailableError("Device busy [MOCK]")
        for chunk in self.frames:
            on_frames(chunk)
        stream = MockStream()
        self.streams.append(stream)
        return stream


class MockSpeechPrompt:
    """Records prompts instead of speaking them."""

    def __init__(self, fail_on: Sequence[str] = (), fail_initialize: bool = False):
        self.spoken_messages: List[str] = []
        self.fail_on = tuple(fail_on)
        self.fail_initialize = fail_initialize
        self.stop_calls = 0
        self.is_speaking = False

    def initialize(self) -> None:
        if self.fail_initialize:
            raise SpeechPlaybackError("TTS unavailable [MOCK]")

    def speak_async(self, text: str) -> Future:
        future: Future = Future()
        self.spoken_messages.append(text)
        if any(marker in text for marker in self.fail_on):
            future.set_exception(SpeechPlaybackError(f"Playback failed [MOCK]: {text[:40]}"))
        else:
            future.set_result(True)
        return future

    def speak(self, text: str) -> bool:
        return self.speak_async(text).result()

    def stop(self) -> None:
        self.stop_calls += 1


def make_transcription_result(text: str, job_id: str = "job_mock",
                              seconds_per_word: float = 0.4,
                              confidence: float = 0.95) -> TranscriptionResult:
    """Evenly timed word-level result for a transcript."""
    words = []
    step_ms = int(seconds_per_word * 1000)
    for i, token in enumerate(text.split()):
        words.append(Word(text=token, start_ms=i * step_ms, end_ms=(i + 1) * step_ms, confidence=confidence))
    return TranscriptionResult(
        job_id=job_id,
        text=text,
        confidence=confidence if words else 0.0,
        audio_duration=len(words) * seconds_per_word,
        words=tuple(words),
    )


Outcome = Union[str, TranscriptionResult, Exception]


class MockTranscriptionClient:
    """
    Returns one scripted outcome per transcribe() call.

    Strings become evenly timed results, exceptions are raised, and
    TranscriptionResult objects are returned as-is.
    """

    def __init__(self, outcomes: Optional[List[Outcome]] = None, fail_initialize: bool = False):
        self.outcomes = list(outcomes or [])
        self.fail_initialize = fail_initialize
        self.calls: List[Dict[str, Any]] = []
        self.on_transcribe = None

    def initialize(self) -> None:
        if self.fail_initialize:
            raise ValueError("Transcription API key is not configured [MOCK]")

    def transcribe(self, clip, word_boost=None, cancel_event: Optional[threading.Event] = None) -> TranscriptionResult:
        self.calls.append({
            "path": getattr(clip, "path", None),
            "existed": clip.exists() if hasattr(clip, "exists") else True,
            "word_boost": list(word_boost or []),
        })
        if self.on_transcribe is not None:
            self.on_transcribe(len(self.calls) - 1)

        index = len(self.calls) - 1
        outcome: Outcome = self.outcomes[index] if index < len(self.outcomes) else "I have no further comments."
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, TranscriptionResult):
            return outcome
        return make_transcription_result(outcome, job_id=f"job_{index}")


class MockAnswerScorer(AnswerScorer):
    """Fixed score, optionally after a delay or with an error."""

    def __init__(self, score: float = 7.5, delay: float = 0.0, error: Optional[Exception] = None):
        self.score = score
        self.delay = delay
        self.error = error
        self.calls: List[Dict[str, Any]] = []
        self._release = threading.Event()

    def release(self) -> None:
        """Let delayed evaluations finish immediately."""
        self._release.set()

    def evaluate(self, question_text, transcript, expected_keywords, speech_metrics, context=None) -> AnswerScore:
        self.calls.append({
            "question_text": question_text,
            "transcript": transcript,
            "expected_keywords": tuple(expected_keywords),
            "context": context,
        })
        if self.delay:
            self._release.wait(self.delay)
        if self.error is not None:
            raise self.error
        return AnswerScore(
            overall_score=self.score,
            detailed_feedback="Solid answer [MOCK]",
            strengths=("structure",),
            improvements=("detail",),
        )


class MockLLMClient:
    """Mock LLM client for scorer and question-source tests."""

    def __init__(self, mock_responses: List[Any]):
        self.mock_responses = list(mock_responses)
        self.current_response_idx = 0
        self.request_history: List[str] = []

    def generate_json(self, prompt: str, temperature: float = 0.0) -> Any:
        self.request_history.append(prompt)
        if self.current_response_idx >= len(self.mock_responses):
            raise RuntimeError("No more mock responses [MOCK]")
        response = self.mock_responses[self.current_response_idx]
        self.current_response_idx += 1
        if isinstance(response, Exception):
            raise response
        return response


class FailingSessionStore(InMemorySessionStore):
    """In-memory store whose writes after creation fail."""

    def append_answer(self, session_id: str, answer: AnsweredQuestion) -> None:
        raise OSError("Disk full [MOCK]")


def sample_job_role() -> JobRole:
    return JobRole(title="Backend Engineer", category="Technology",
                   required_skills=("Python", "PostgreSQL", "Docker"))


def sample_questions(count: int = 3) -> List[Question]:
    texts = [
        ("Tell me about a system you designed.", "technical", ("scalability", "database")),
        ("Describe a conflict in your team and how you handled it.", "behavioral", ("communication",)),
        ("How would you debug a slow API endpoint?", "situational", ("profiling", "caching")),
        ("Why do you want this role?", "general", ()),
    ]
    questions = []
    for i in range(count):
        text, qtype, keywords = texts[i % len(texts)]
        questions.append(Question(id=f"q{i + 1}", text=text, question_type=qtype, expected_keywords=keywords))
    return questions


def stop_answers_automatically(controller: InterviewSessionController) -> None:
    """Call request_stop() as soon as the controller starts listening."""
    def handler(event):
        if event.data.get("current") == SessionStatus.LISTENING.value:
            controller.request_stop()
    controller.event_bus.subscribe(EventType.STATUS_CHANGED, handler)


def create_mock_interview_setup(transcripts: Optional[List[Outcome]] = None,
                                microphone: Optional[MockMicrophone] = None,
                                scorer: Optional[AnswerScorer] = None,
                                temp_dir: Optional[str] = None,
                                auto_stop: bool = True,
                                **controller_kwargs) -> Dict[str, Any]:
    """
    Build a controller over mock leaf services and a real AudioCapture.

    Recordings go to a fresh temporary directory returned as "temp_dir".
    """
    temp_dir = temp_dir or tempfile.mkdtemp(prefix="voiceprep_test_")
    microphone = microphone or MockMicrophone()
    speech_prompt = MockSpeechPrompt()
    capture = AudioCapture(microphone=microphone, output_dir=temp_dir, retry_delay=0.0)
    transcription_client = MockTranscriptionClient(transcripts)
    scorer = scorer or MockAnswerScorer()
    store = InMemorySessionStore()

    controller_kwargs.setdefault("announce", False)
    controller_kwargs.setdefault("score_wait_seconds", 2.0)
    controller = InterviewSessionController(
        speech_prompt=speech_prompt,
        audio_capture=capture,
        transcription_client=transcription_client,
        answer_scorer=scorer,
        session_store=store,
        **controller_kwargs,
    )
    if auto_stop:
        stop_answers_automatically(controller)
    return {
        "controller": controller,
        "speech_prompt": speech_prompt,
        "audio_capture": capture,
        "microphone": microphone,
        "transcription_client": transcription_client,
        "scorer": scorer,
        "session_store": store,
        "temp_dir": temp_dir,
    }


def cleanup_test_files(temp_dir: str) -> None:
    """Clean up test files and directories."""
    shutil.rmtree(temp_dir, ignore_errors=True)
