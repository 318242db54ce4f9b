import pytest

from voiceprep.infrastructure.transcription import TranscriptionResult, Word
from voiceprep.interview.analysis import (
    SpeechMetricsAnalyzer, answer_coherence, count_phrase_matches, normalize_token,
    sentiment_insights, transcription_quality, _phrase_set
)
from voiceprep.interview.models import JobRole
from voiceprep.interview.testing import make_transcription_result


def _result(tokens, confidences, step_ms=400):
    words = tuple(
        Word(text=t, start_ms=i * step_ms, end_ms=(i + 1) * step_ms, confidence=c)
        for i, (t, c) in enumerate(zip(tokens, confidences))
    )
    return TranscriptionResult(job_id="job", text=" ".join(tokens), confidence=0.9, words=words)


def test_words_per_minute_is_exact_for_150_words_in_60_seconds():
    result = make_transcription_result(" ".join(["word"] * 150), seconds_per_word=0.4)

    metrics = SpeechMetricsAnalyzer().analyze(result)

    assert metrics.speech_duration_seconds == 60.0
    assert metrics.words_per_minute == 150.0
    assert metrics.total_words == 150


def test_confident_answer_without_fillers_is_clear():
    result = make_transcription_result("I designed the service around a queue", confidence=0.9)

    metrics = SpeechMetricsAnalyzer().analyze(result)

    assert metrics.filler_word_count == 0
    assert metrics.clarity_score >= 0.7
    assert metrics.confidence_distribution.high == 7


def test_fillers_match_multi_word_phrases_and_punctuation():
    tokens = ["Um,", "I", "think,", "you", "know,", "it", "was", "basically", "fine."]
    result = _result(tokens, [0.9] * len(tokens))

    metrics = SpeechMetricsAnalyzer().analyze(result)

    assert metrics.filler_word_count == 3


def test_hesitations_are_short_low_confidence_words():
    tokens = ["I", "uh", "implemented", "the", "cache"]
    confidences = [0.95, 0.3, 0.4, 0.45, 0.9]
    result = _result(tokens, confidences)

    metrics = SpeechMetricsAnalyzer().analyze(result)

    # "implemented" is low confidence but too long to be a stammer
    assert metrics.hesitation_count == 2
    assert metrics.confidence_distribution.high == 2
    assert metrics.confidence_distribution.low == 3


def test_confidence_buckets_use_inclusive_lower_bounds():
    result = _result(["a", "b", "c"], [0.8, 0.6, 0.59])

    dist = SpeechMetricsAnalyzer().analyze(result).confidence_distribution

    assert (dist.high, dist.medium, dist.low) == (1, 1, 1)


def test_degenerate_duration_defaults_to_one_second():
    words = (Word("hello", 500, 500, 0.9), Word("there", 500, 500, 0.9))
    result = TranscriptionResult(job_id="job", text="hello there", words=words)

    metrics = SpeechMetricsAnalyzer().analyze(result)

    assert metrics.speech_duration_seconds == 1.0
    assert metrics.words_per_minute == 120.0


def test_no_words_yields_zero_metrics():
    result = TranscriptionResult(job_id="job", text="")

    metrics = SpeechMetricsAnalyzer().analyze(result)

    assert metrics.total_words == 0
    assert metrics.words_per_minute == 0.0
    assert metrics.clarity_score == 0.0


def test_technical_density_uses_role_vocabulary():
    role = JobRole(title="Senior Software Engineer")
    tokens = ["we", "did", "code", "review", "and", "refactoring"]
    result = _result(tokens, [0.9] * len(tokens))

    metrics = SpeechMetricsAnalyzer().analyze(result, role)

    assert metrics.technical_term_density == pytest.approx(0.5)


def test_clarity_is_clamped():
    tokens = ["um"] * 4
    result = _result(tokens, [0.1] * 4)

    metrics = SpeechMetricsAnalyzer().analyze(result)

    assert 0.0 <= metrics.clarity_score <= 1.0


def test_analysis_is_deterministic():
    result = make_transcription_result("like I said the API uses caching")
    analyzer = SpeechMetricsAnalyzer()

    assert analyzer.analyze(result) == analyzer.analyze(result)


def test_phrase_matching_prefers_longest_phrase():
    phrases = _phrase_set(["machine learning", "machine"])
    tokens = ["machine", "learning", "and", "machine"]

    assert count_phrase_matches(tokens, phrases) == (2, 3)


def test_normalize_token_strips_edge_punctuation_only():
    assert normalize_token("Um,") == "um"
    assert normalize_token("node.js") == "node.js"


def test_sentiment_insights_without_segments_is_neutral():
    insights = sentiment_insights(TranscriptionResult(job_id="job", text="hi"))

    assert insights["overall_sentiment"] == "neutral"
    assert insights["confidence_level"] == "unknown"


def test_answer_coherence_rewards_structure():
    text = "I profiled the endpoint first. Then I added caching to the slow query and measured again."

    coherence = answer_coherence(text, "How would you debug a slow endpoint?")

    assert coherence["sentence_count"] == 2
    assert coherence["coherence_score"] == pytest.approx(1.0)
    assert coherence["relevance_score"] > 0


def test_transcription_quality_is_bounded():
    result = make_transcription_result("short answer")
    metrics = SpeechMetricsAnalyzer().analyze(result)

    assert 0.0 <= transcription_quality(result, metrics) <= 1.0
