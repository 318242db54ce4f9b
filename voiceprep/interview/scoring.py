"""
Answer scorers: a local keyword heuristic and an LLM-backed scorer.
"""
import time
import logging
from typing import Any, Dict, Optional, Sequence

import requests

from ..config import SCORE_MAX_RETRIES, SCORE_BACKOFF_SECONDS
from .analysis import tokenize
from .models import AnswerScore, SpeechMetrics
from .prompts import InterviewPrompts
from .schemas import parse_score_payload
from .services import AnswerScorer

logger = logging.getLogger("scoring")


class KeywordAnswerScorer(AnswerScorer):
    """
    Deterministic offline scorer.

    Half the score comes from expected-keyword coverage, the rest from
    answer length and delivery clarity.
    """

    def __init__(self, target_words: int = 80):
        self.target_words = target_words

    def evaluate(self,
                 question_text: str,
                 transcript: str,
                 expected_keywords: Sequence[str],
                 speech_metrics: SpeechMetrics,
                 context: Optional[Dict[str, Any]] = None) -> AnswerScore:
        text = " ".join(tokenize(transcript))
        mentioned = [k for k in expected_keywords if " ".join(tokenize(k)) and " ".join(tokenize(k)) in text]
        missing = [k for k in expected_keywords if k not in mentioned]

        coverage = len(mentioned) / len(expected_keywords) if expected_keywords else 0.5
        length = min(1.0, len(text.split()) / float(self.target_words))
        score = 10.0 * (0.5 * coverage + 0.25 * length + 0.25 * speech_metrics.clarity_score)

        strengths = []
        improvements = []
        if mentioned:
            strengths.append(f"Covered key points: {', '.join(mentioned)}")
        if missing:
            improvements.append(f"Could also address: {', '.join(missing)}")
        if speech_metrics.filler_word_count > 3:
            improvements.append(f"Reduce filler words ({speech_metrics.filler_word_count} used)")
        if speech_metrics.clarity_score >= 0.8:
            strengths.append("Clear, confident delivery")
        if length < 0.3:
            improvements.append("Give a more detailed answer with a concrete example")

        return AnswerScore(
            overall_score=round(score, 1),
            detailed_feedback=(f"Mentioned {len(mentioned)} of {len(expected_keywords)} expected keywords "
                               f"at {speech_metrics.words_per_minute:.0f} words per minute."),
            strengths=tuple(strengths),
            improvements=tuple(improvements),
        )


class LLMAnswerScorer(AnswerScorer):
    """Scores answers with Gemini, retrying transient failures with exponential backoff."""

    def __init__(self, llm_client,
                 max_retries: int = SCORE_MAX_RETRIES,
                 backoff_seconds: float = SCORE_BACKOFF_SECONDS,
                 sleep=time.sleep):
        self.llm_client = llm_client
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def evaluate(self,
                 question_text: str,
                 transcript: str,
                 expected_keywords: Sequence[str],
                 speech_metrics: SpeechMetrics,
                 context: Optional[Dict[str, Any]] = None) -> AnswerScore:
        context = context or {}
        prompt = InterviewPrompts.answer_evaluation(
            question_text=question_text,
            question_type=context.get("question_type", "general"),
            difficulty=context.get("difficulty", "medium"),
            transcript=transcript,
            expected_keywords=expected_keywords,
            speech_metrics=speech_metrics.to_dict(),
            analysis=context.get("analysis"),
            job_title=context.get("job_title"),
            sample_answer=context.get("sample_answer"),
        )

        for attempt in range(1, self.max_retries):
            try:
                logger.debug(f"Answer evaluation attempt {attempt} of {self.max_retries}")
                return parse_score_payload(self.llm_client.generate_json(prompt))
            except (requests.RequestException, RuntimeError) as e:
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(f"Evaluation attempt {attempt} failed ({e}); retrying in {delay:.1f}s")
                self._sleep(delay)

        # Last attempt; errors propagate to the caller
        logger.debug(f"Answer evaluation attempt {self.max_retries} of {self.max_retries}")
        return parse_score_payload(self.llm_client.generate_json(prompt))
