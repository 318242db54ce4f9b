import os

import pytest
import requests

from voiceprep.interview.models import (
    AnsweredQuestion, InterviewSession, JobRole, Question, SessionStatus, SpeechMetrics
)
from voiceprep.interview.questions import LLMQuestionSource, StaticQuestionSource
from voiceprep.interview.scoring import KeywordAnswerScorer, LLMAnswerScorer
from voiceprep.interview.services import InMemorySessionStore, JsonSessionStore
from voiceprep.interview.testing import MockLLMClient, sample_job_role
from voiceprep.interview.vocabulary import TECH_WORD_BOOST, boost_terms, role_vocabulary


def make_session(session_id="session_1"):
    return InterviewSession(id=session_id, questions=[Question(id="q1", text="Tell me about yourself.")],
                            job_role=sample_job_role())


def answer(order=0):
    return AnsweredQuestion("q1", "Tell me about yourself.", order, transcript="I build APIs.")


# Session stores

def test_in_memory_store_tracks_answers_and_status():
    store = InMemorySessionStore()
    session_id = store.create_session(make_session())

    store.append_answer(session_id, answer())
    store.update_status(session_id, SessionStatus.COMPLETED)

    document = store.get(session_id)
    assert document["status"] == "completed"
    assert document["completed_at"] is not None
    assert document["answers"][0]["transcript"] == "I build APIs."


def test_in_memory_store_returns_copies():
    store = InMemorySessionStore()
    session_id = store.create_session(make_session())

    store.get(session_id)["answers"].append("tampered")

    assert store.get(session_id)["answers"] == []


def test_in_memory_store_keeps_ids_unique():
    store = InMemorySessionStore()

    first = store.create_session(make_session("dup"))
    second = store.create_session(make_session("dup"))

    assert first != second


def test_in_memory_store_rejects_unknown_session():
    with pytest.raises(KeyError):
        InMemorySessionStore().append_answer("missing", answer())


def test_json_store_writes_session_document(tmp_path):
    store = JsonSessionStore(str(tmp_path))
    session_id = store.create_session(make_session())

    store.append_answer(session_id, answer(0))
    store.append_answer(session_id, answer(1))
    store.update_status(session_id, SessionStatus.COMPLETED)

    document = store.load(session_id)
    assert document["id"] == session_id
    assert document["status"] == "completed"
    assert [a["order"] for a in document["answers"]] == [0, 1]
    assert document["job_role"]["title"] == "Backend Engineer"
    assert os.listdir(store.session_dir(session_id)) == ["session.json"]


def test_json_store_never_reuses_a_session_directory(tmp_path):
    store = JsonSessionStore(str(tmp_path))

    first = store.create_session(make_session("dup"))
    second = store.create_session(make_session("dup"))
    store.append_answer(first, answer())

    assert first != second
    assert len(store.load(first)["answers"]) == 1
    assert store.load(second)["answers"] == []


# Scorers

def metrics(clarity=0.85, fillers=0):
    return SpeechMetrics(words_per_minute=130.0, clarity_score=clarity, filler_word_count=fillers, total_words=12)


def test_keyword_scorer_rewards_coverage():
    scorer = KeywordAnswerScorer()
    keywords = ("profiling", "caching")

    full = scorer.evaluate("How would you debug a slow endpoint?",
                           "First profiling, then caching the hot queries.", keywords, metrics())
    none = scorer.evaluate("How would you debug a slow endpoint?",
                           "I would restart the server.", keywords, metrics())

    assert full.overall_score > none.overall_score
    assert 0.0 <= none.overall_score <= full.overall_score <= 10.0
    assert any("profiling" in s for s in full.strengths)
    assert any("caching" in s for s in none.improvements)


def test_keyword_scorer_flags_filler_words():
    score = KeywordAnswerScorer().evaluate("Q", "um so like yeah", (), metrics(clarity=0.4, fillers=5))

    assert any("filler" in s.lower() for s in score.improvements)
    assert any("detailed" in s for s in score.improvements)


def test_llm_scorer_parses_model_output():
    client = MockLLMClient([{"overall_score": 8.5, "detailed_feedback": "Strong",
                             "strengths": ["depth"], "areas_for_improvement": ["pace"]}])
    scorer = LLMAnswerScorer(client, sleep=lambda s: None)

    score = scorer.evaluate("Design a cache.", "I would use LRU eviction.", ("eviction",), metrics(),
                            {"question_type": "technical", "difficulty": "hard", "job_title": "Backend Engineer"})

    assert score.overall_score == 8.5
    assert score.improvements == ("pace",)
    prompt = client.request_history[0]
    assert "Design a cache." in prompt
    assert "Backend Engineer" in prompt
    assert "eviction" in prompt


def test_llm_scorer_retries_with_backoff():
    delays = []
    client = MockLLMClient([requests.ConnectionError("reset"), RuntimeError("503"), {"overall_score": 6}])
    scorer = LLMAnswerScorer(client, max_retries=3, backoff_seconds=0.5, sleep=delays.append)

    score = scorer.evaluate("Q", "answer", (), metrics())

    assert score.overall_score == 6.0
    assert delays == [0.5, 1.0]


def test_llm_scorer_gives_up_after_max_retries():
    delays = []
    client = MockLLMClient([RuntimeError("down")] * 3)
    scorer = LLMAnswerScorer(client, max_retries=2, backoff_seconds=1.0, sleep=delays.append)

    with pytest.raises(RuntimeError):
        scorer.evaluate("Q", "answer", (), metrics())

    assert len(client.request_history) == 2
    assert delays == [1.0]


def test_llm_scorer_single_attempt_does_not_sleep():
    delays = []
    client = MockLLMClient([requests.ConnectionError("reset"), {"overall_score": 5}])
    scorer = LLMAnswerScorer(client, max_retries=1, sleep=delays.append)

    with pytest.raises(requests.ConnectionError):
        scorer.evaluate("Q", "answer", (), metrics())

    assert delays == []
    assert len(client.request_history) == 1


def test_llm_scorer_does_not_retry_malformed_scores():
    client = MockLLMClient([{"detailed_feedback": "no score"}, {"overall_score": 5}])
    scorer = LLMAnswerScorer(client, sleep=lambda s: None)

    with pytest.raises(ValueError):
        scorer.evaluate("Q", "answer", (), metrics())

    assert len(client.request_history) == 1


# Question sources

def test_static_questions_are_filled_from_role():
    role = sample_job_role()

    questions = StaticQuestionSource().get_questions(role, 4)

    assert len(questions) == 4
    assert "Backend Engineer" in questions[1].text
    assert "Python" in questions[2].text
    assert questions[2].expected_keywords == role.required_skills
    assert len({q.id for q in questions}) == 4


def test_static_questions_cap_at_template_count():
    assert len(StaticQuestionSource().get_questions(sample_job_role(), 50)) == 10


def test_llm_questions_drop_malformed_items():
    client = MockLLMClient([{"questions": [
        {"question_text": "Explain indexes.", "question_type": "technical", "expected_keywords": ["b-tree"]},
        {"question_text": ""},
        "not a question",
        {"question_text": "Tell me about a failure.", "question_type": "behavioral"},
    ]}])

    questions = LLMQuestionSource(client).get_questions(sample_job_role(), 5, "hard")

    assert [q.text for q in questions] == ["Explain indexes.", "Tell me about a failure."]
    assert "Difficulty Level: hard" in client.request_history[0]


def test_llm_questions_fall_back_on_failure():
    client = MockLLMClient([requests.Timeout("slow")])

    questions = LLMQuestionSource(client).get_questions(sample_job_role(), 3)

    assert len(questions) == 3
    assert questions[0].text == "Can you tell me about yourself and your background?"


def test_llm_questions_fall_back_when_empty():
    questions = LLMQuestionSource(MockLLMClient([[]])).get_questions(sample_job_role(), 2)

    assert len(questions) == 2


# Vocabulary

def test_role_vocabulary_matches_title_by_containment():
    terms = role_vocabulary(JobRole(title="Senior Software Engineer", required_skills=("Rust",)))

    assert "refactoring" in terms
    assert "Rust" in terms


def test_unknown_role_without_skills_uses_general_terms():
    assert role_vocabulary(JobRole(title="Chef")) == list(TECH_WORD_BOOST)


def test_boost_terms_are_deduplicated_case_insensitively():
    terms = boost_terms(sample_job_role(), ("python", "profiling"))

    assert [t.lower() for t in terms].count("python") == 1
    assert "profiling" in terms
    assert terms[:len(TECH_WORD_BOOST)] == list(TECH_WORD_BOOST)
