"""
Structured schemas for session state and scorer payloads.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import AnswerScore, SessionStatus


# ERROR is reachable from every state and is handled separately.
ALLOWED_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.IDLE: frozenset({SessionStatus.PREPARING}),
    SessionStatus.PREPARING: frozenset({SessionStatus.SPEAKING, SessionStatus.COMPLETED}),
    SessionStatus.SPEAKING: frozenset({SessionStatus.LISTENING, SessionStatus.COMPLETED}),
    SessionStatus.LISTENING: frozenset({SessionStatus.PROCESSING, SessionStatus.COMPLETED}),
    SessionStatus.PROCESSING: frozenset({SessionStatus.SPEAKING, SessionStatus.COMPLETED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.ERROR: frozenset(),
}

# Only reset() leaves these
RESETTABLE = frozenset({SessionStatus.ERROR, SessionStatus.COMPLETED})


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    if target == SessionStatus.ERROR:
        return current != SessionStatus.ERROR
    return target in ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class SessionSnapshot:
    """Pollable view of a controller for UI layers."""
    status: SessionStatus
    session_id: Optional[str]
    current_question_index: int
    total_questions: int
    answers_recorded: int
    last_error: Optional[str]
    amplitude: float


class ScorePayload(BaseModel):
    """Scorer JSON as returned by the LLM."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    overall_score: float = Field(ge=0.0)
    detailed_feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list, alias="areas_for_improvement")

    @field_validator("overall_score")
    @classmethod
    def clamp_score(cls, v: float) -> float:
        return min(10.0, v)

    @field_validator("strengths", "improvements", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(item) for item in v]

    def to_score(self) -> AnswerScore:
        return AnswerScore(
            overall_score=self.overall_score,
            detailed_feedback=self.detailed_feedback,
            strengths=tuple(self.strengths),
            improvements=tuple(self.improvements),
        )


def parse_score_payload(raw: Union[str, Dict[str, Any]]) -> AnswerScore:
    """
    Parse scorer output into an AnswerScore.

    Args:
        raw: Decoded JSON object or raw model text

    Returns:
        AnswerScore object

    Raises:
        ValueError: If the payload cannot be parsed into a valid score
    """
    data = raw
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            start = raw.find("{")
            end = raw.rfind("}")
            if start == -1 or end <= start:
                raise ValueError(f"No JSON found in scorer response: {raw[:200]}")
            try:
                data = json.loads(raw[start:end + 1])
            except json.JSONDecodeError:
                raise ValueError(f"Could not extract valid JSON from scorer response: {raw[:200]}")

    if not isinstance(data, dict):
        raise ValueError(f"Scorer response is not an object: {data!r}")
    try:
        return ScorePayload.model_validate(data).to_score()
    except ValidationError as e:
        raise ValueError(f"Invalid score structure: {e}") from e
