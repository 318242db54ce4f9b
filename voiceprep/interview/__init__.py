"""Interview system components.

This module contains the business logic for conducting spoken mock interviews:
the session controller, speech-quality analysis, scoring and question sources.
"""

# Core controller class
from .orchestrator import InterviewSessionController

# Data models
from .models import (
    SessionStatus, QuestionType, Difficulty, JobRole, Question,
    ConfidenceDistribution, SpeechMetrics, AnswerScore, AnsweredQuestion,
    InterviewSession, InterviewResult
)

# Structured schemas and state management
from .schemas import SessionSnapshot, can_transition, parse_score_payload

# Analysis
from .analysis import SpeechMetricsAnalyzer, FILLER_WORDS

# Service interfaces and implementations
from .services import (
    AnswerScorer, SessionStore, QuestionSource,
    InMemorySessionStore, JsonSessionStore
)
from .scoring import KeywordAnswerScorer, LLMAnswerScorer
from .questions import StaticQuestionSource, LLMQuestionSource

# Event system
from .events import (
    InterviewEventBus, EventLogger, SessionMetrics,
    EventType, InterviewEvent, SessionStartedEvent, StatusChangedEvent,
    QuestionAskedEvent, AnswerRecordedEvent, AnswerSkippedEvent,
    TranscriptionFailedEvent, AnswerScoredEvent, SessionCompletedEvent,
    ErrorOccurredEvent
)

__all__ = [
    # Controller
    "InterviewSessionController",

    # Data models
    "SessionStatus", "QuestionType", "Difficulty", "JobRole", "Question",
    "ConfidenceDistribution", "SpeechMetrics", "AnswerScore", "AnsweredQuestion",
    "InterviewSession", "InterviewResult",

    # Schemas and state
    "SessionSnapshot", "can_transition", "parse_score_payload",

    # Analysis
    "SpeechMetricsAnalyzer", "FILLER_WORDS",

    # Services
    "AnswerScorer", "SessionStore", "QuestionSource",
    "InMemorySessionStore", "JsonSessionStore",
    "KeywordAnswerScorer", "LLMAnswerScorer",
    "StaticQuestionSource", "LLMQuestionSource",

    # Events
    "InterviewEventBus", "EventLogger", "SessionMetrics",
    "EventType", "InterviewEvent", "SessionStartedEvent", "StatusChangedEvent",
    "QuestionAskedEvent", "AnswerRecordedEvent", "AnswerSkippedEvent",
    "TranscriptionFailedEvent", "AnswerScoredEvent", "SessionCompletedEvent",
    "ErrorOccurredEvent",
]
