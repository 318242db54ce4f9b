"""
Interview session controller.

Drives one session through Idle -> Preparing -> Speaking -> Listening ->
Processing -> (Speaking | Completed), with Error reachable from any state.
All leaf services are injected; the controller owns none of them globally.
"""
import time
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError, wait
from typing import Dict, Optional, Sequence

from ..config import MIN_ANSWER_SECONDS, MIN_CLIP_BYTES, SCORE_POLL_SECONDS, SCORE_WAIT_SECONDS
from ..errors import (
    CaptureBusyError, DeviceUnavailableError, EmptyAnswerError, InterviewError,
    InvalidTransitionError, SpeechPlaybackError, TranscriptionCancelledError,
    TranscriptionFailure
)
from .analysis import (
    SpeechMetricsAnalyzer, answer_coherence, categorize_entities,
    sentiment_insights, transcription_quality
)
from .events import (
    InterviewEventBus, AnswerRecordedEvent, AnswerScoredEvent, AnswerSkippedEvent,
    ErrorOccurredEvent, QuestionAskedEvent, SessionCompletedEvent, SessionStartedEvent,
    StatusChangedEvent, TranscriptionFailedEvent
)
from .models import (
    AnswerScore, AnsweredQuestion, InterviewResult, InterviewSession, JobRole,
    Question, SessionStatus
)
from .prompts import InterviewPrompts
from .schemas import RESETTABLE, SessionSnapshot, can_transition
from .services import AnswerScorer, InMemorySessionStore, SessionStore
from .vocabulary import boost_terms

logger = logging.getLogger("orchestrator")


class InterviewSessionController:
    """
    Runs one interview session at a time over injected services.

    Leaf services are used strictly one at a time: a question is spoken,
    then the answer recorded, then transcribed. Scoring runs on a worker
    thread and is awaited only for score_wait_seconds.

    request_stop() ends the current answer, request_end() ends the whole
    session; both are safe to call from any thread.
    """

    def __init__(self,
                 speech_prompt,
                 audio_capture,
                 transcription_client,
                 answer_scorer: Optional[AnswerScorer] = None,
                 session_store: Optional[SessionStore] = None,
                 analyzer: Optional[SpeechMetricsAnalyzer] = None,
                 event_bus: Optional[InterviewEventBus] = None,
                 announce: bool = True,
                 min_answer_seconds: float = MIN_ANSWER_SECONDS,
                 min_clip_bytes: int = MIN_CLIP_BYTES,
                 score_wait_seconds: float = SCORE_WAIT_SECONDS):
        self.speech_prompt = speech_prompt
        self.audio_capture = audio_capture
        self.transcription_client = transcription_client
        self.answer_scorer = answer_scorer
        self.session_store = session_store or InMemorySessionStore()
        self.analyzer = analyzer or SpeechMetricsAnalyzer()
        self.event_bus = event_bus or InterviewEventBus()
        self.announce = announce
        self.min_answer_seconds = min_answer_seconds
        self.min_clip_bytes = min_clip_bytes
        self.score_wait_seconds = score_wait_seconds

        self._lock = threading.Lock()
        self._status = SessionStatus.IDLE
        self._last_error: Optional[str] = None
        self._session: Optional[InterviewSession] = None
        self._initialized = False

        self._stop_event = threading.Event()
        self._end_event = threading.Event()

        self._executor: Optional[ThreadPoolExecutor] = None
        self._late_lock = threading.Lock()
        self._pending_scores: Dict[str, Future] = {}
        self._late_scores: Dict[str, AnswerScore] = {}

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            return self._status

    @property
    def last_error(self) -> Optional[str]:
        with self._lock:
            return self._last_error

    @property
    def session(self) -> Optional[InterviewSession]:
        return self._session

    @property
    def current_question_index(self) -> int:
        return self._session.current_question_index if self._session else 0

    def amplitude(self) -> float:
        return self.audio_capture.amplitude()

    def snapshot(self) -> SessionSnapshot:
        """Current status for UI layers that poll instead of subscribing."""
        session = self._session
        with self._lock:
            status, last_error = self._status, self._last_error
        return SessionSnapshot(
            status=status,
            session_id=session.id if session else None,
            current_question_index=session.current_question_index if session else 0,
            total_questions=len(session.questions) if session else 0,
            answers_recorded=len(session.answers) if session else 0,
            last_error=last_error,
            amplitude=self.amplitude(),
        )

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def request_stop(self) -> None:
        """Finish the answer being recorded (user button or UI timer)."""
        logger.debug("Stop requested")
        self._stop_event.set()

    def request_end(self) -> None:
        """End the session early; honored at the next suspension point."""
        logger.info("End of session requested")
        self._end_event.set()
        self._stop_event.set()
        self.speech_prompt.stop()

    def reset(self) -> None:
        """Return a Completed or Error controller to Idle."""
        with self._lock:
            if self._status not in RESETTABLE:
                raise InvalidTransitionError(self._status, SessionStatus.IDLE)
            previous = self._status
            self._status = SessionStatus.IDLE
            self._last_error = None
        self._session = None
        self._late_scores = {}
        self._pending_scores = {}
        self._stop_event.clear()
        self._end_event.clear()
        logger.info(f"Controller reset from {previous.value}")

    def initialize(self) -> None:
        """
        Initialize the three leaf services.

        A failure moves the controller to Error before it is re-raised.

        Raises:
            DeviceUnavailableError, SpeechPlaybackError, ValueError: whatever
                the failing service raised
        """
        if self._initialized:
            return
        logger.info("Initializing interview services")
        try:
            self.speech_prompt.initialize()
            self.audio_capture.initialize()
            self.transcription_client.initialize()
        except Exception as e:
            self._fail(e, "initialization")
            raise
        self._initialized = True
        logger.info("Interview services ready")

    def start(self, questions: Sequence[Question], job_role: Optional[JobRole] = None) -> InterviewSession:
        """
        Validate the question list, initialize services and create the session record.

        Leaves the controller in Speaking, ready for the first question.

        Raises:
            ValueError: Empty question list
            InvalidTransitionError: The controller is not Idle
            Exception: Service initialization or session creation failed;
                the controller is left in Error
        """
        if not questions:
            raise ValueError("An interview needs at least one question")
        self._transition(SessionStatus.PREPARING)

        self.initialize()
        try:
            session = InterviewSession(id="", questions=list(questions), job_role=job_role)
            session.id = self.session_store.create_session(session)
        except Exception as e:
            self._fail(e, "session_store")
            raise

        self._session = session
        self._late_scores = {}
        self._pending_scores = {}
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="answer-scorer")
        self._emit(SessionStartedEvent(session.id, time.time(), len(session.questions),
                                       job_role.title if job_role else None))
        logger.info(f"Session {session.id} started with {len(session.questions)} questions")
        self._transition(SessionStatus.SPEAKING)
        return session

    def run(self, questions: Sequence[Question], job_role: Optional[JobRole] = None) -> InterviewResult:
        """
        Run a full session and return its aggregated result.

        Per-question transcription failures never stop the session; the
        loop always finishes in Completed unless initialization fails.
        """
        session = self.start(questions, job_role)
        try:
            if self.announce:
                self._say(InterviewPrompts.welcome(job_role.title if job_role else None,
                                                   len(session.questions)))

            while session.current_question_index < len(session.questions):
                if self._end_event.is_set():
                    break
                record = self._ask(session.current_question_index, session.current_question)
                if record is None:
                    break
                self._append(record)
                session.current_question_index += 1

            return self._finish()
        except Exception as e:
            self.audio_capture.cancel()
            self._fail(e, "session")
            raise
        finally:
            if self._executor is not None:
                self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # One question
    # ------------------------------------------------------------------

    def _ask(self, index: int, question: Question) -> Optional[AnsweredQuestion]:
        """Speak, record and process one question. None means the session is ending."""
        session = self._session
        if self.status != SessionStatus.SPEAKING:
            self._transition(SessionStatus.SPEAKING)

        self._emit(QuestionAskedEvent(session.id, time.time(), index, question.id, question.text))
        self._say(InterviewPrompts.question_announcement(index, len(session.questions), question.text))
        if self._end_event.is_set():
            return None

        self._stop_event.clear()
        self._transition(SessionStatus.LISTENING)
        if self._end_event.is_set():
            return None

        try:
            self.audio_capture.start()
        except (DeviceUnavailableError, CaptureBusyError) as e:
            logger.error(f"Could not record answer to question {index + 1}: {e}")
            self._transition(SessionStatus.PROCESSING)
            return self._degraded(index, question, e)

        self._stop_event.wait()
        if self._end_event.is_set():
            self.audio_capture.cancel()
            return None

        self._transition(SessionStatus.PROCESSING)
        clip = self.audio_capture.stop()
        if clip is None or clip.byte_length < self.min_clip_bytes or clip.duration_seconds < self.min_answer_seconds:
            if clip is not None:
                clip.discard()
            return self._skipped(index, question, "No usable audio was captured")

        try:
            result = self.transcription_client.transcribe(
                clip,
                word_boost=boost_terms(session.job_role, question.expected_keywords),
                cancel_event=self._end_event,
            )
        except TranscriptionCancelledError:
            logger.info(f"Transcription of question {index + 1} cancelled")
            return None
        except TranscriptionFailure as e:
            logger.error(f"Transcription failed for question {index + 1}: {e}")
            return self._degraded(index, question, e)
        finally:
            clip.discard()

        if self._end_event.is_set():
            return None
        if result.is_empty:
            return self._skipped(index, question, "Transcript was empty")

        metrics = self.analyzer.analyze(result, session.job_role)
        score = self._score(question, result, metrics)
        if self._end_event.is_set():
            return None
        record = AnsweredQuestion(
            question_id=question.id,
            question_text=question.text,
            order=index,
            transcript=result.text,
            metrics=metrics,
            score=score,
        )
        self._emit(AnswerRecordedEvent(session.id, time.time(), index, question.id,
                                       result.text, metrics.to_dict()))
        return record

    def _skipped(self, index: int, question: Question, reason: str) -> AnsweredQuestion:
        logger.info(f"Question {index + 1} skipped: {reason}")
        self._emit(AnswerSkippedEvent(self._session.id, time.time(), index, question.id, reason))
        if self.announce:
            self._say(InterviewPrompts.no_answer())
        return AnsweredQuestion(
            question_id=question.id,
            question_text=question.text,
            order=index,
            error=EmptyAnswerError.__name__,
            error_message=reason,
            skipped=True,
        )

    def _degraded(self, index: int, question: Question, error: InterviewError) -> AnsweredQuestion:
        with self._lock:
            self._last_error = f"{error.marker}: {error}"
        self._emit(TranscriptionFailedEvent(self._session.id, time.time(), index, question.id,
                                            error.marker, str(error)))
        return AnsweredQuestion(
            question_id=question.id,
            question_text=question.text,
            order=index,
            error=error.marker,
            error_message=str(error),
        )

    def _score(self, question: Question, result, metrics) -> Optional[AnswerScore]:
        """Score on the worker thread, waiting at most score_wait_seconds."""
        if self.answer_scorer is None:
            return None

        session = self._session
        context = {
            "question_type": question.question_type.value,
            "difficulty": question.difficulty.value,
            "job_title": session.job_role.title if session.job_role else None,
            "sample_answer": question.sample_answer,
            "analysis": {
                "sentiment": sentiment_insights(result),
                "entities": categorize_entities(result, session.job_role),
                "coherence": answer_coherence(result.text, question.text, session.job_role),
                "transcription_quality": transcription_quality(result, metrics),
            },
        }
        future = self._executor.submit(
            self.answer_scorer.evaluate,
            question.text, result.text, question.expected_keywords, metrics, context,
        )
        deadline = time.monotonic() + self.score_wait_seconds
        while not future.done() and not self._end_event.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            wait([future], timeout=min(remaining, SCORE_POLL_SECONDS))
        if not future.done() and self._end_event.is_set():
            logger.info(f"Session ending; dropping score for {question.id}")
            future.cancel()
            return None

        try:
            score = future.result(timeout=0)
        except FutureTimeoutError:
            logger.warning(f"Scoring of {question.id} still running; recording answer without a score")
            with self._late_lock:
                self._pending_scores[question.id] = future
            future.add_done_callback(lambda f, qid=question.id: self._on_late_score(qid, f))
            return None
        except Exception as e:
            logger.error(f"Scoring failed for {question.id}: {e}")
            self._emit(ErrorOccurredEvent(session.id, time.time(), type(e).__name__, str(e), "answer_scorer"))
            return None

        self._emit(AnswerScoredEvent(session.id, time.time(), question.id, score.overall_score, late=False))
        return score

    def _on_late_score(self, question_id: str, future: Future) -> None:
        """
        Record a score that missed its wait.

        Called from the done-callback and again by _finish; only the first
        call for a question has any effect.
        """
        with self._late_lock:
            if self._pending_scores.pop(question_id, None) is None:
                return
            session_id = self._session.id if self._session else ""
            error = future.exception()
            if error is not None:
                logger.error(f"Late scoring failed for {question_id}: {error}")
                self._emit(ErrorOccurredEvent(session_id, time.time(), type(error).__name__,
                                              str(error), "answer_scorer"))
                return
            score = future.result()
            self._late_scores[question_id] = score
            logger.info(f"Late score for {question_id}: {score.overall_score}")
            self._emit(AnswerScoredEvent(session_id, time.time(), question_id, score.overall_score, late=True))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _say(self, text: str) -> None:
        """Speak and wait; playback failures are logged and the turn continues."""
        try:
            self.speech_prompt.speak(text)
        except SpeechPlaybackError as e:
            logger.warning(f"Prompt playback failed, continuing: {e}")
            with self._lock:
                self._last_error = f"{e.marker}: {e}"
            self._emit(ErrorOccurredEvent(self._session.id if self._session else "", time.time(),
                                          e.marker, str(e), "speech_prompt"))

    def _append(self, record: AnsweredQuestion) -> None:
        session = self._session
        session.answers.append(record)
        try:
            self.session_store.append_answer(session.id, record)
        except Exception as e:
            logger.error(f"Failed to persist answer {record.question_id}: {e}")
            self._emit(ErrorOccurredEvent(session.id, time.time(), type(e).__name__, str(e), "session_store"))

    def _finish(self) -> InterviewResult:
        session = self._session
        session.ended_early = session.current_question_index < len(session.questions)
        session.completed_at = time.time()

        if self.announce:
            self._say(InterviewPrompts.closing(session.ended_early))

        with self._late_lock:
            pending = list(self._pending_scores.items())
        if pending and not session.ended_early:
            logger.info(f"Waiting up to {self.score_wait_seconds}s for {len(pending)} pending scores")
            wait([future for _, future in pending], timeout=self.score_wait_seconds)
        for question_id, future in pending:
            if future.done():
                self._on_late_score(question_id, future)

        self._transition(SessionStatus.COMPLETED)
        with self._late_lock:
            late_scores = dict(self._late_scores)
        result = InterviewResult.from_session(session, late_scores)
        self._emit(SessionCompletedEvent(session.id, time.time(), len(session.answers),
                                         len(session.questions), session.ended_early, result.overall_score))
        logger.info(f"Session {session.id} completed: {len(session.answers)}/{len(session.questions)} answers"
                    f"{' (ended early)' if session.ended_early else ''}")
        return result

    def _transition(self, target: SessionStatus) -> None:
        with self._lock:
            previous = self._status
            if not can_transition(previous, target):
                raise InvalidTransitionError(previous, target)
            self._status = target
        session = self._session
        if session is not None:
            session.status = target
        logger.debug(f"Status {previous.value} -> {target.value}")

        session_id = session.id if session else ""
        self._emit(StatusChangedEvent(session_id, time.time(), previous.value, target.value))
        if session is not None:
            try:
                self.session_store.update_status(session.id, target)
            except Exception as e:
                logger.error(f"Failed to persist status {target.value}: {e}")
                self._emit(ErrorOccurredEvent(session.id, time.time(), type(e).__name__, str(e), "session_store"))

    def _fail(self, error: Exception, component: str) -> None:
        marker = error.marker if isinstance(error, InterviewError) else type(error).__name__
        logger.error(f"Unrecoverable {component} error: {error}")
        with self._lock:
            self._last_error = f"{marker}: {error}"
        if self.status != SessionStatus.ERROR:
            self._transition(SessionStatus.ERROR)
        session_id = self._session.id if self._session else ""
        self._emit(ErrorOccurredEvent(session_id, time.time(), marker, str(error), component))

    def _emit(self, event) -> None:
        self.event_bus.emit(event)
