"""
Data models for the interview system.
"""
import re
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..config import DEFAULT_TIME_LIMIT_SECONDS


class SessionStatus(str, Enum):
    """Lifecycle states of an interview session."""
    IDLE = "idle"
    PREPARING = "preparing"
    SPEAKING = "speaking"
    LISTENING = "listening"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class QuestionType(str, Enum):
    GENERAL = "general"
    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    SITUATIONAL = "situational"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")


@dataclass(frozen=True)
class JobRole:
    """The position being interviewed for."""
    title: str
    category: str = "General"
    required_skills: Tuple[str, ...] = ()
    id: str = ""

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, "id", _slug(self.title))
        object.__setattr__(self, "required_skills", tuple(self.required_skills))


@dataclass(frozen=True)
class Question:
    """A single interview question; immutable once generated."""
    id: str
    text: str
    question_type: QuestionType = QuestionType.GENERAL
    difficulty: Difficulty = Difficulty.MEDIUM
    expected_keywords: Tuple[str, ...] = ()
    time_limit_seconds: Optional[int] = DEFAULT_TIME_LIMIT_SECONDS
    sample_answer: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "question_type", QuestionType(self.question_type))
        object.__setattr__(self, "difficulty", Difficulty(self.difficulty))
        object.__setattr__(self, "expected_keywords", tuple(self.expected_keywords))

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_id: str = "") -> "Question":
        """Build from a question-source payload (snake_case keys)."""
        text = (data.get("question_text") or data.get("text") or "").strip()
        if not text:
            raise ValueError(f"Question payload has no text: {data}")
        qtype = str(data.get("question_type", QuestionType.GENERAL.value)).lower()
        difficulty = str(data.get("difficulty_level", data.get("difficulty", Difficulty.MEDIUM.value))).lower()
        return cls(
            id=str(data.get("id") or default_id or _slug(text)[:40]),
            text=text,
            question_type=qtype if qtype in QuestionType._value2member_map_ else QuestionType.GENERAL,
            difficulty=difficulty if difficulty in Difficulty._value2member_map_ else Difficulty.MEDIUM,
            expected_keywords=tuple(data.get("expected_keywords") or data.get("expected_answer_keywords") or ()),
            time_limit_seconds=int(data.get("time_limit_seconds") or DEFAULT_TIME_LIMIT_SECONDS),
            sample_answer=data.get("sample_answer"),
        )


@dataclass(frozen=True)
class ConfidenceDistribution:
    """Word counts per confidence bucket."""
    high: int = 0
    medium: int = 0
    low: int = 0


@dataclass(frozen=True)
class SpeechMetrics:
    """Delivery features derived from a word-level transcript."""
    words_per_minute: float = 0.0
    average_confidence: float = 0.0
    confidence_distribution: ConfidenceDistribution = field(default_factory=ConfidenceDistribution)
    clarity_score: float = 0.0
    hesitation_count: int = 0
    filler_word_count: int = 0
    technical_term_density: float = 0.0
    total_words: int = 0
    speech_duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AnswerScore:
    """Scorer output for one answer (overall score on a 0-10 scale)."""
    overall_score: float
    detailed_feedback: str = ""
    strengths: Tuple[str, ...] = ()
    improvements: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AnsweredQuestion:
    """
    Record of one question's outcome, appended once and never mutated.

    Skipped questions and failed transcriptions are still recorded; the
    error field holds the error class name (e.g. "UploadError").
    """
    question_id: str
    question_text: str
    order: int
    transcript: str = ""
    metrics: Optional[SpeechMetrics] = None
    score: Optional[AnswerScore] = None
    error: Optional[str] = None
    error_message: Optional[str] = None
    skipped: bool = False
    answered_at: float = field(default_factory=time.time)

    @property
    def failed(self) -> bool:
        return self.error is not None and not self.skipped

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class InterviewSession:
    """Mutable session state owned by one controller."""
    id: str
    questions: List[Question]
    job_role: Optional[JobRole] = None
    current_question_index: int = 0
    status: SessionStatus = SessionStatus.IDLE
    answers: List[AnsweredQuestion] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None
    ended_early: bool = False

    @property
    def current_question(self) -> Optional[Question]:
        if self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class InterviewResult:
    """Final interview results and aggregate scores."""
    session_id: str
    answers: List[AnsweredQuestion] = field(default_factory=list)
    total_questions: int = 0
    ended_early: bool = False
    overall_score: Optional[float] = None
    answered_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    average_words_per_minute: float = 0.0
    average_clarity: float = 0.0
    # Scores that arrived after their answer had been recorded
    late_scores: Dict[str, AnswerScore] = field(default_factory=dict)

    def score_for(self, answer: AnsweredQuestion) -> Optional[AnswerScore]:
        return answer.score or self.late_scores.get(answer.question_id)

    @classmethod
    def from_session(cls, session: InterviewSession,
                     late_scores: Optional[Dict[str, AnswerScore]] = None) -> "InterviewResult":
        """
        Aggregate a finished session.

        Skipped answers stay in the list and the counts but carry zero
        weight in overall_score, which averages scored answers only.
        """
        result = cls(
            session_id=session.id,
            answers=list(session.answers),
            total_questions=len(session.questions),
            ended_early=session.ended_early,
            late_scores=dict(late_scores or {}),
        )
        result.skipped_count = sum(1 for a in result.answers if a.skipped)
        result.failed_count = sum(1 for a in result.answers if a.failed)
        result.answered_count = len(result.answers) - result.skipped_count - result.failed_count

        scores = [result.score_for(a).overall_score for a in result.answers
                  if not a.skipped and result.score_for(a) is not None]
        if scores:
            result.overall_score = sum(scores) / len(scores)

        measured = [a.metrics for a in result.answers if a.metrics is not None and a.metrics.total_words > 0]
        if measured:
            result.average_words_per_minute = sum(m.words_per_minute for m in measured) / len(measured)
            result.average_clarity = sum(m.clarity_score for m in measured) / len(measured)
        return result
