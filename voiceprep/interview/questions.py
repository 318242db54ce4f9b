"""
Question sources: role-templated static questions and LLM-generated ones.
"""
import uuid
import logging
from typing import Any, Dict, List, Optional

import requests

from .models import Difficulty, JobRole, Question
from .prompts import InterviewPrompts
from .services import QuestionSource

logger = logging.getLogger("questions")


def _question_id() -> str:
    return f"q_{uuid.uuid4()}"


def _templates(job_role: JobRole) -> List[Dict[str, Any]]:
    skills = list(job_role.required_skills)
    first_skill = skills[0] if skills else "relevant technologies"
    second_skill = skills[1] if len(skills) > 1 else first_skill
    return [
        {
            "question_text": "Can you tell me about yourself and your background?",
            "question_type": "general",
            "difficulty_level": "easy",
            "expected_keywords": ["experience", "skills", "background"],
            "sample_answer": f"I am a {job_role.title} with experience in {', '.join(skills[:3]) or first_skill}.",
        },
        {
            "question_text": f"What interests you about this {job_role.title} position?",
            "question_type": "behavioral",
            "difficulty_level": "easy",
            "expected_keywords": ["interest", "motivation", "skills"],
        },
        {
            "question_text": f"Can you explain your experience with {first_skill}?",
            "question_type": "technical",
            "difficulty_level": "medium",
            "expected_keywords": skills,
        },
        {
            "question_text": "Describe a challenging project you've worked on and how you overcame difficulties.",
            "question_type": "behavioral",
            "difficulty_level": "medium",
            "expected_keywords": ["challenge", "project", "solution", "overcome"],
        },
        {
            "question_text": f"How do you stay updated with the latest trends in {job_role.category}?",
            "question_type": "general",
            "difficulty_level": "easy",
            "expected_keywords": ["learning", "trends", "update", "technology"],
        },
        {
            "question_text": "What are your strengths and how do they relate to this role?",
            "question_type": "behavioral",
            "difficulty_level": "easy",
            "expected_keywords": ["strengths", "skills", "role"],
        },
        {
            "question_text": "Where do you see yourself in 5 years?",
            "question_type": "general",
            "difficulty_level": "easy",
            "expected_keywords": ["career", "goals", "growth"],
        },
        {
            "question_text": f"How would you approach a problem involving {second_skill}?",
            "question_type": "technical",
            "difficulty_level": "medium",
            "expected_keywords": skills,
            "sample_answer": "I would start by analyzing the requirements, then design a solution using best practices.",
        },
        {
            "question_text": "Describe your experience working in a team environment.",
            "question_type": "behavioral",
            "difficulty_level": "easy",
            "expected_keywords": ["team", "collaboration", "communication"],
        },
        {
            "question_text": "Do you have any questions for us about the role or company?",
            "question_type": "general",
            "difficulty_level": "easy",
            "expected_keywords": ["questions", "role", "company"],
        },
    ]


class StaticQuestionSource(QuestionSource):
    """Fills a fixed set of templates with the role's title, category and skills."""

    def get_questions(self, job_role: JobRole, count: int, difficulty: str = "medium") -> List[Question]:
        templates = _templates(job_role)[:max(0, count)]
        return [Question.from_dict(t, default_id=_question_id()) for t in templates]


class LLMQuestionSource(QuestionSource):
    """
    Generates questions with Gemini.

    Falls back to the static templates when the model call fails or
    returns nothing usable.
    """

    def __init__(self, llm_client, fallback: Optional[QuestionSource] = None):
        self.llm_client = llm_client
        self.fallback = fallback or StaticQuestionSource()

    def get_questions(self, job_role: JobRole, count: int, difficulty: str = "medium") -> List[Question]:
        if difficulty not in Difficulty._value2member_map_:
            difficulty = Difficulty.MEDIUM.value
        prompt = InterviewPrompts.question_generation(
            job_title=job_role.title,
            job_category=job_role.category,
            required_skills=job_role.required_skills,
            difficulty=difficulty,
            count=count,
        )
        try:
            payload = self.llm_client.generate_json(prompt)
        except (requests.RequestException, RuntimeError, ValueError) as e:
            logger.warning(f"Question generation failed, using templates: {e}")
            return self.fallback.get_questions(job_role, count, difficulty)

        if isinstance(payload, dict):
            payload = payload.get("questions", [])
        questions = []
        for item in payload if isinstance(payload, list) else []:
            try:
                questions.append(Question.from_dict(item, default_id=_question_id()))
            except (ValueError, TypeError, AttributeError) as e:
                logger.debug(f"Dropping malformed generated question: {e}")

        if not questions:
            logger.warning("Model returned no usable questions, using templates")
            return self.fallback.get_questions(job_role, count, difficulty)
        logger.info(f"Generated {len(questions[:count])} questions for {job_role.title}")
        return questions[:count]
