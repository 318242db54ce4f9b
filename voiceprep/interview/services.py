"""
Collaborator interfaces consumed by the session controller, plus session stores.
"""
import os
import json
import time
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from .models import (
    AnswerScore, AnsweredQuestion, InterviewSession, JobRole, Question,
    SessionStatus, SpeechMetrics
)

logger = logging.getLogger("services")


class AnswerScorer(ABC):
    """Scores one transcribed answer. Treated as best-effort by the controller."""

    @abstractmethod
    def evaluate(self,
                 question_text: str,
                 transcript: str,
                 expected_keywords: Sequence[str],
                 speech_metrics: SpeechMetrics,
                 context: Optional[Dict[str, Any]] = None) -> AnswerScore:
        """
        Args:
            question_text: The question as asked
            transcript: Transcribed answer
            expected_keywords: Keywords a good answer mentions
            speech_metrics: Delivery metrics for the answer
            context: Optional extras (question_type, difficulty, job_title,
                sample_answer, analysis)
        """


class SessionStore(ABC):
    """Persists sessions and their answers."""

    @abstractmethod
    def create_session(self, session: InterviewSession) -> str:
        """Persist a new session and return its id."""

    @abstractmethod
    def append_answer(self, session_id: str, answer: AnsweredQuestion) -> None:
        """Append an answer record to a session."""

    @abstractmethod
    def update_status(self, session_id: str, status: SessionStatus) -> None:
        """Record a status transition."""


class QuestionSource(ABC):
    """Supplies the ordered question list before a session starts."""

    @abstractmethod
    def get_questions(self, job_role: JobRole, count: int, difficulty: str = "medium") -> List[Question]:
        """Return up to count questions for the role."""


def _new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}"


class InMemorySessionStore(SessionStore):
    """Keeps session documents in a dict; used by tests and text-only runs."""

    def __init__(self):
        self._lock = threading.Lock()
        self.sessions: Dict[str, Dict[str, Any]] = {}

    def create_session(self, session: InterviewSession) -> str:
        with self._lock:
            session_id = session.id or _new_session_id()
            while session_id in self.sessions:
                session_id += "_1"
            document = session.to_dict()
            document["id"] = session_id
            self.sessions[session_id] = document
        return session_id

    def append_answer(self, session_id: str, answer: AnsweredQuestion) -> None:
        with self._lock:
            self._get(session_id)["answers"].append(answer.to_dict())

    def update_status(self, session_id: str, status: SessionStatus) -> None:
        with self._lock:
            document = self._get(session_id)
            document["status"] = status.value
            if status == SessionStatus.COMPLETED:
                document["completed_at"] = time.time()

    def get(self, session_id: str) -> Dict[str, Any]:
        with self._lock:
            return json.loads(json.dumps(self._get(session_id), default=str))

    def _get(self, session_id: str) -> Dict[str, Any]:
        try:
            return self.sessions[session_id]
        except KeyError:
            raise KeyError(f"Unknown session: {session_id}") from None


class JsonSessionStore(SessionStore):
    """
    Stores each session as {workdir}/{session_id}/session.json.

    Writes go through a temporary file and os.replace so a crash never
    leaves a half-written document.
    """

    def __init__(self, workdir: str):
        self.workdir = workdir
        self._lock = threading.Lock()

    def session_dir(self, session_id: str) -> str:
        return os.path.join(self.workdir, session_id)

    def _path(self, session_id: str) -> str:
        return os.path.join(self.session_dir(session_id), "session.json")

    def create_session(self, session: InterviewSession) -> str:
        with self._lock:
            session_id = session.id or _new_session_id()
            os.makedirs(self.workdir, exist_ok=True)
            # The directory claims the id, also against other processes
            while True:
                try:
                    os.mkdir(self.session_dir(session_id))
                    break
                except FileExistsError:
                    session_id += "_1"
            document = session.to_dict()
            document["id"] = session_id
            self._write(session_id, document)
        logger.info(f"Created session workspace {self.session_dir(session_id)}")
        return session_id

    def append_answer(self, session_id: str, answer: AnsweredQuestion) -> None:
        with self._lock:
            document = self.load(session_id)
            document.setdefault("answers", []).append(answer.to_dict())
            self._write(session_id, document)

    def update_status(self, session_id: str, status: SessionStatus) -> None:
        with self._lock:
            document = self.load(session_id)
            document["status"] = status.value
            if status == SessionStatus.COMPLETED:
                document["completed_at"] = time.time()
            self._write(session_id, document)

    def load(self, session_id: str) -> Dict[str, Any]:
        with open(self._path(session_id), "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, session_id: str, document: Dict[str, Any]) -> None:
        path = self._path(session_id)
        tmp_path = path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, default=str)
        os.replace(tmp_path, path)
