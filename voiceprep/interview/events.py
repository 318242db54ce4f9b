"""
Event-driven notifications for the interview session.

The controller publishes every state change here so UI layers and loggers
can subscribe instead of catching exceptions.
"""
import logging
import threading
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    SESSION_STARTED = "session_started"
    STATUS_CHANGED = "status_changed"
    QUESTION_ASKED = "question_asked"
    ANSWER_RECORDED = "answer_recorded"
    ANSWER_SKIPPED = "answer_skipped"
    TRANSCRIPTION_FAILED = "transcription_failed"
    ANSWER_SCORED = "answer_scored"
    SESSION_COMPLETED = "session_completed"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionStartedEvent(InterviewEvent):
    """Event fired when the session record is created."""
    def __init__(self, session_id: str, timestamp: float, total_questions: int,
                 job_title: Optional[str]):
        super().__init__(
            event_type=EventType.SESSION_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"total_questions": total_questions, "job_title": job_title}
        )


@dataclass
class StatusChangedEvent(InterviewEvent):
    """Event fired on every state machine transition."""
    def __init__(self, session_id: str, timestamp: float, previous: str, current: str):
        super().__init__(
            event_type=EventType.STATUS_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={"previous": previous, "current": current}
        )


@dataclass
class QuestionAskedEvent(InterviewEvent):
    """Event fired before a question is spoken."""
    def __init__(self, session_id: str, timestamp: float, index: int,
                 question_id: str, question_text: str):
        super().__init__(
            event_type=EventType.QUESTION_ASKED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "index": index,
                "question_id": question_id,
                "question_text": question_text
            }
        )


@dataclass
class AnswerRecordedEvent(InterviewEvent):
    """Event fired when a transcribed answer is appended."""
    def __init__(self, session_id: str, timestamp: float, index: int,
                 question_id: str, transcript: str, metrics: Dict[str, Any]):
        super().__init__(
            event_type=EventType.ANSWER_RECORDED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "index": index,
                "question_id": question_id,
                "transcript": transcript,
                "metrics": metrics
            }
        )


@dataclass
class AnswerSkippedEvent(InterviewEvent):
    """Event fired when no usable answer was captured."""
    def __init__(self, session_id: str, timestamp: float, index: int,
                 question_id: str, reason: str):
        super().__init__(
            event_type=EventType.ANSWER_SKIPPED,
            session_id=session_id,
            timestamp=timestamp,
            data={"index": index, "question_id": question_id, "reason": reason}
        )


@dataclass
class TranscriptionFailedEvent(InterviewEvent):
    """Event fired when an answer is recorded in degraded form."""
    def __init__(self, session_id: str, timestamp: float, index: int,
                 question_id: str, error_type: str, error_message: str):
        super().__init__(
            event_type=EventType.TRANSCRIPTION_FAILED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "index": index,
                "question_id": question_id,
                "error_type": error_type,
                "error_message": error_message
            }
        )


@dataclass
class AnswerScoredEvent(InterviewEvent):
    """Event fired when the scorer returns, including after the answer was recorded."""
    def __init__(self, session_id: str, timestamp: float, question_id: str,
                 overall_score: float, late: bool):
        super().__init__(
            event_type=EventType.ANSWER_SCORED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_id": question_id,
                "overall_score": overall_score,
                "late": late
            }
        )


@dataclass
class SessionCompletedEvent(InterviewEvent):
    """Event fired when the session reaches Completed."""
    def __init__(self, session_id: str, timestamp: float, answers: int,
                 total_questions: int, ended_early: bool, overall_score: Optional[float]):
        super().__init__(
            event_type=EventType.SESSION_COMPLETED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "answers": answers,
                "total_questions": total_questions,
                "ended_early": ended_early,
                "overall_score": overall_score
            }
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    """Event fired when an error occurs."""
    def __init__(self, session_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for interview system communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        with self._lock:
            self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        Events may be emitted from the scoring worker thread as well as the
        controller thread. A failing handler is logged and skipped.
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: InterviewEvent) -> None:
        self.logger.info(f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class SessionMetrics:
    """Collects counters from interview events."""

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        counter = {
            EventType.SESSION_STARTED: "sessions_started",
            EventType.SESSION_COMPLETED: "sessions_completed",
            EventType.ANSWER_RECORDED: "answers_recorded",
            EventType.ANSWER_SKIPPED: "answers_skipped",
            EventType.TRANSCRIPTION_FAILED: "transcription_failures",
            EventType.ANSWER_SCORED: "answers_scored",
            EventType.ERROR_OCCURRED: "errors_occurred",
        }.get(event.event_type)
        if counter is None:
            return
        with self._lock:
            setattr(self, counter, getattr(self, counter) + 1)
            if event.event_type == EventType.ANSWER_SCORED and event.data.get("late"):
                self.late_scores += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        with self._lock:
            return {
                "sessions_started": self.sessions_started,
                "sessions_completed": self.sessions_completed,
                "answers_recorded": self.answers_recorded,
                "answers_skipped": self.answers_skipped,
                "transcription_failures": self.transcription_failures,
                "answers_scored": self.answers_scored,
                "late_scores": self.late_scores,
                "errors_occurred": self.errors_occurred
            }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.sessions_started = 0
        self.sessions_completed = 0
        self.answers_recorded = 0
        self.answers_skipped = 0
        self.transcription_failures = 0
        self.answers_scored = 0
        self.late_scores = 0
        self.errors_occurred = 0
