"""
Transcription results handed from the client to the analyzer and scorer.
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Word:
    """A recognized word with timing in milliseconds."""
    text: str
    start_ms: int
    end_ms: int
    confidence: float


@dataclass(frozen=True)
class SentimentSegment:
    text: str
    sentiment: str
    confidence: float
    start_ms: Optional[int] = None
    end_ms: Optional[int] = None


@dataclass(frozen=True)
class Entity:
    entity_type: str
    text: str


@dataclass(frozen=True)
class TranscriptionResult:
    """Final transcript of one clip."""
    job_id: str
    text: str
    confidence: float = 0.0
    audio_duration: float = 0.0
    words: Tuple[Word, ...] = field(default_factory=tuple)
    sentiment: Tuple[SentimentSegment, ...] = field(default_factory=tuple)
    entities: Tuple[Entity, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip() and not self.words

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
