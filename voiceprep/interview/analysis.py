"""
Speech-quality analysis of word-level transcripts.

SpeechMetricsAnalyzer turns a TranscriptionResult into SpeechMetrics. The
remaining helpers summarize sentiment, entities and answer coherence for
the scorer prompt. Everything here is a pure function of its inputs.
"""
import re
import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from ..infrastructure.transcription import TranscriptionResult
from .models import ConfidenceDistribution, JobRole, SpeechMetrics
from .vocabulary import role_vocabulary

logger = logging.getLogger("interview_analysis")

FILLER_WORDS: Tuple[str, ...] = ("um", "uh", "er", "ah", "like", "you know", "basically", "actually")

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.6
HESITATION_CONFIDENCE = 0.5
HESITATION_MAX_LENGTH = 3

_EDGE_PUNCTUATION = re.compile(r"^[^\w]+|[^\w]+$")


def normalize_token(text: str) -> str:
    """Lowercase and strip leading/trailing punctuation ("Um," -> "um")."""
    return _EDGE_PUNCTUATION.sub("", text.lower())


def tokenize(text: str) -> List[str]:
    return [t for t in (normalize_token(w) for w in text.split()) if t]


def _phrase_set(phrases: Iterable[str]) -> Dict[int, FrozenSet[Tuple[str, ...]]]:
    """Group tokenized phrases by length, longest first when iterated."""
    by_length: Dict[int, set] = {}
    for phrase in phrases:
        tokens = tuple(tokenize(phrase))
        if tokens:
            by_length.setdefault(len(tokens), set()).add(tokens)
    return {n: frozenset(by_length[n]) for n in sorted(by_length, reverse=True)}


def count_phrase_matches(tokens: Sequence[str], phrases: Dict[int, FrozenSet[Tuple[str, ...]]]) -> Tuple[int, int]:
    """
    Greedy longest-match scan.

    Returns:
        (number of matches, number of tokens covered by matches)
    """
    matches = covered = 0
    i = 0
    while i < len(tokens):
        for length, candidates in phrases.items():
            if i + length <= len(tokens) and tuple(tokens[i:i + length]) in candidates:
                matches += 1
                covered += length
                i += length
                break
        else:
            i += 1
    return matches, covered


class SpeechMetricsAnalyzer:
    """Derives delivery metrics from word timings and confidences."""

    def __init__(self, filler_words: Iterable[str] = FILLER_WORDS):
        self._fillers = _phrase_set(filler_words)
        self._vocab_cache: Dict[Optional[JobRole], Dict[int, FrozenSet[Tuple[str, ...]]]] = {}

    def _vocabulary(self, job_role: Optional[JobRole]) -> Dict[int, FrozenSet[Tuple[str, ...]]]:
        if job_role not in self._vocab_cache:
            self._vocab_cache[job_role] = _phrase_set(role_vocabulary(job_role))
        return self._vocab_cache[job_role]

    def analyze(self, result: TranscriptionResult, job_role: Optional[JobRole] = None) -> SpeechMetrics:
        """
        Compute SpeechMetrics for one transcript.

        Args:
            result: Completed transcription with word timings
            job_role: Role whose vocabulary defines technical terms

        Returns:
            SpeechMetrics; all zeros when there are no words
        """
        words = result.words
        if not words:
            return SpeechMetrics()

        total = len(words)
        tokens = [normalize_token(w.text) for w in words]

        duration = (words[-1].end_ms - words[0].start_ms) / 1000.0
        if duration <= 0:
            duration = 1.0
        words_per_minute = total / duration * 60

        confidences = [w.confidence for w in words]
        high = sum(1 for c in confidences if c >= HIGH_CONFIDENCE)
        medium = sum(1 for c in confidences if MEDIUM_CONFIDENCE <= c < HIGH_CONFIDENCE)
        low = total - high - medium

        filler_count, _ = count_phrase_matches(tokens, self._fillers)
        hesitations = sum(
            1 for token, c in zip(tokens, confidences)
            if c < HESITATION_CONFIDENCE and 0 < len(token) <= HESITATION_MAX_LENGTH
        )

        clarity = 0.7 * (high / total) + 0.3 * (1 - filler_count / total)
        clarity = max(0.0, min(1.0, clarity))

        _, technical_tokens = count_phrase_matches(tokens, self._vocabulary(job_role))

        metrics = SpeechMetrics(
            words_per_minute=words_per_minute,
            average_confidence=sum(confidences) / total,
            confidence_distribution=ConfidenceDistribution(high=high, medium=medium, low=low),
            clarity_score=clarity,
            hesitation_count=hesitations,
            filler_word_count=filler_count,
            technical_term_density=technical_tokens / total,
            total_words=total,
            speech_duration_seconds=duration,
        )
        logger.debug(f"Speech metrics for job {result.job_id}: {metrics}")
        return metrics


def sentiment_insights(result: TranscriptionResult) -> Dict[str, Any]:
    """Summarize per-sentence sentiment into an overall tone."""
    segments = result.sentiment
    if not segments:
        return {
            "confidence_level": "unknown",
            "emotional_stability": 0.5,
            "overall_sentiment": "neutral",
        }

    weights: Dict[str, float] = {}
    for seg in segments:
        weights[seg.sentiment.lower()] = weights.get(seg.sentiment.lower(), 0.0) + seg.confidence
    overall = max(weights, key=weights.get)
    mean_confidence = sum(s.confidence for s in segments) / len(segments)

    if overall == "positive" and mean_confidence > 0.7:
        confidence_level = "high"
    elif overall == "negative" and mean_confidence > 0.7:
        confidence_level = "low"
    else:
        confidence_level = "moderate"

    return {
        "confidence_level": confidence_level,
        "emotional_stability": mean_confidence,
        "overall_sentiment": overall,
        "sentiment_confidence": mean_confidence,
        "segments": len(segments),
    }


def categorize_entities(result: TranscriptionResult, job_role: Optional[JobRole] = None) -> Dict[str, Any]:
    """Bucket detected entities by relevance to the role."""
    categorized: Dict[str, List[str]] = {
        "technical_terms": [],
        "companies": [],
        "technologies": [],
        "other": [],
    }
    role_terms = {term.lower() for term in role_vocabulary(job_role)}

    for entity in result.entities:
        kind = entity.entity_type.lower()
        if kind in ("organization", "company"):
            categorized["companies"].append(entity.text)
        elif kind in ("technology", "software", "programming_language", "product"):
            categorized["technologies"].append(entity.text)
        elif entity.text.lower() in role_terms:
            categorized["technical_terms"].append(entity.text)
        else:
            categorized["other"].append(entity.text)

    total = len(result.entities)
    return {
        "entities": categorized,
        "total_entities": total,
        "technical_entity_ratio": len(categorized["technical_terms"]) / (total + 1),
    }


def transcription_quality(result: TranscriptionResult, metrics: SpeechMetrics) -> float:
    """Blend service confidence with clarity and mean word confidence."""
    score = 0.4 * result.confidence + 0.3 * metrics.clarity_score + 0.3 * metrics.average_confidence
    return max(0.0, min(1.0, score))


def answer_coherence(text: str, question_text: str, job_role: Optional[JobRole] = None) -> Dict[str, Any]:
    """
    Rough structure and relevance heuristics for an answer.

    Coherence rewards multiple sentences, punctuation, sentences longer
    than five words and answers longer than ten words. Relevance comes
    from question-word overlap and technical term usage.
    """
    if not text.strip():
        return {
            "coherence_score": 0.0,
            "relevance_score": 0.0,
            "answer_length": 0,
            "sentence_count": 0,
            "keyword_matches": 0,
            "technical_term_usage": 0.0,
        }

    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    words = tokenize(text)
    answer_words = set(words)
    question_words = tokenize(question_text)

    keyword_matches = sum(1 for q in question_words if len(q) > 3 and q in answer_words)
    _, technical_tokens = count_phrase_matches(words, _phrase_set(role_vocabulary(job_role)))
    technical_usage = technical_tokens / len(words) if words else 0.0
    average_sentence_length = len(words) / len(sentences) if sentences else 0.0

    coherence = 0.0
    if len(sentences) > 1:
        coherence += 0.3
    if re.search(r"[.!?]", text):
        coherence += 0.2
    if average_sentence_length > 5:
        coherence += 0.3
    if len(words) > 10:
        coherence += 0.2

    relevance = 0.0
    if keyword_matches and question_words:
        relevance += min(0.5, keyword_matches / len(question_words))
    if technical_usage > 0:
        relevance += min(0.5, technical_usage * 2)

    return {
        "coherence_score": min(1.0, coherence),
        "relevance_score": min(1.0, relevance),
        "answer_length": len(words),
        "sentence_count": len(sentences),
        "keyword_matches": keyword_matches,
        "technical_term_usage": technical_usage,
        "average_sentence_length": average_sentence_length,
    }
