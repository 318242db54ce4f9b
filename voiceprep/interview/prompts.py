"""
Interview prompt templates.

Spoken prompts for the session and the LLM prompts used by the scorer and
the question source, kept apart from the business logic for easier editing.
"""
import json
from typing import Any, Dict, List, Optional, Sequence


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    @staticmethod
    def welcome(job_title: Optional[str], total_questions: int) -> str:
        position = f" for the position of {job_title}" if job_title else ""
        return (
            f"Hello! Welcome to your voice interview{position}. "
            f"I'll be asking you {total_questions} question{'s' if total_questions != 1 else ''} today. "
            "Take your time to think and answer clearly. You can end the interview at any time. "
            "Let's start with the first question."
        )

    @staticmethod
    def question_announcement(index: int, total: int, question_text: str) -> str:
        return f"Question {index + 1} of {total}: {question_text}"

    @staticmethod
    def no_answer() -> str:
        return "I didn't hear an answer, so let's move on to the next question."

    @staticmethod
    def closing(ended_early: bool) -> str:
        if ended_early:
            return "Thanks, we'll stop here. I'm preparing feedback on the answers you gave."
        return "Thank you for completing the interview! I am now preparing your detailed feedback."

    @staticmethod
    def answer_evaluation(
        question_text: str,
        question_type: str,
        difficulty: str,
        transcript: str,
        expected_keywords: Sequence[str],
        speech_metrics: Dict[str, Any],
        analysis: Optional[Dict[str, Any]] = None,
        job_title: Optional[str] = None,
        sample_answer: Optional[str] = None,
    ) -> str:
        """Scoring prompt; the transcript comes from speech recognition."""
        sample = f'- Ideal Answer: "{sample_answer}"\n' if sample_answer else ""
        analysis_block = json.dumps(analysis, indent=1, default=str) if analysis else "None"
        return f"""
You are an expert interview assessor. The candidate answered aloud; the answer
below is a speech-to-text transcript, so judge content over transcription slips.

INTERVIEW CONTEXT:
- Position: {job_title or 'Not specified'}
- Question Type: {question_type}
- Difficulty Level: {difficulty}
- Question: "{question_text}"

CANDIDATE RESPONSE:
"{transcript}"

EVALUATION CRITERIA:
- Expected Keywords: {', '.join(expected_keywords) or 'None'}
{sample}
SPEECH DELIVERY METRICS:
{json.dumps(speech_metrics, indent=1, default=str)}

TRANSCRIPT ANALYSIS:
{analysis_block}

GUIDANCE:
- If speaking pace is very fast (>220 wpm) or slow (<80 wpm), consider communication impact
- If hesitation count is high (>5), factor it into the confidence assessment
- If clarity is low (<0.6), note that the transcript may contain recognition errors

Return a JSON object:
{{"overall_score": <0-10 number>,
 "detailed_feedback": "<2-4 sentences>",
 "strengths": ["..."],
 "areas_for_improvement": ["..."]}}
        """.strip()

    @staticmethod
    def question_generation(
        job_title: str,
        job_category: str,
        required_skills: Sequence[str],
        difficulty: str,
        count: int,
    ) -> str:
        return f"""
You are an experienced technical interviewer. Generate {count} realistic interview
questions for the following role.

JOB ROLE DETAILS:
- Position: {job_title}
- Category: {job_category}
- Difficulty Level: {difficulty}
- Required Skills: {', '.join(required_skills) or 'Not specified'}

Mix question types: technical (40%), behavioral (30%), situational (20%), general (10%).
Questions must be answerable aloud in under three minutes.

Return a JSON array of objects with keys:
"question_text", "question_type" (general|technical|behavioral|situational),
"difficulty_level" (easy|medium|hard), "expected_keywords" (list of strings),
"time_limit_seconds" (integer), "sample_answer" (string).
        """.strip()


def format_question_list(questions: List[str]) -> str:
    """Numbered list used in CLI output."""
    return "\n".join(f"  {i + 1}. {q}" for i, q in enumerate(questions))
