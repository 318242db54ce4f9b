"""
VoicePrep: spoken mock-interview engine.

Asks interview questions aloud, records each answer, transcribes it with a
remote speech-to-text service and scores delivery and content.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.orchestrator import InterviewSessionController
from .interview.models import InterviewResult, InterviewSession, Question, JobRole
from .config import Config, get_config

__all__ = [
    "InterviewSessionController", "InterviewResult", "InterviewSession",
    "Question", "JobRole", "Config", "get_config",
]
