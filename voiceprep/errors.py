"""
Error taxonomy for the interview system.

Transcription-path errors derive from TranscriptionFailure. The session
controller recovers from those locally and records them on the answer;
anything else raised during initialization is fatal to the session.
"""
from typing import Optional


class InterviewError(Exception):
    """Base class for all voiceprep errors."""

    @property
    def marker(self) -> str:
        """Short name stored on degraded answer records."""
        return type(self).__name__


class DeviceUnavailableError(InterviewError):
    """Microphone or speaker hardware/permission is unavailable."""


class CaptureBusyError(InterviewError):
    """A capture is already active on this AudioCapture."""


class SpeechPlaybackError(InterviewError):
    """Speech synthesis or playback failed."""


class InvalidTransitionError(InterviewError):
    """The session state machine was asked for an illegal transition."""

    def __init__(self, current, target):
        super().__init__(f"Illegal transition {current} -> {target}")
        self.current = current
        self.target = target


class TranscriptionFailure(InterviewError):
    """Base class for errors recovered per question by the controller."""


class UploadError(TranscriptionFailure):
    """Audio upload failed (non-2xx response or I/O failure)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SubmitError(TranscriptionFailure):
    """The transcription job could not be created."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TranscriptionError(TranscriptionFailure):
    """The service reported the job as failed."""

    def __init__(self, reason: str, job_id: Optional[str] = None):
        super().__init__(f"Transcription job {job_id or '?'} failed: {reason}")
        self.reason = reason
        self.job_id = job_id


class TranscriptionTimeoutError(TranscriptionFailure, TimeoutError):
    """Polling exhausted its attempt budget without a terminal status."""

    def __init__(self, job_id: str, attempts: int):
        super().__init__(f"Transcription job {job_id} not finished after {attempts} polls")
        self.job_id = job_id
        self.attempts = attempts


class PollError(TranscriptionFailure):
    """Every poll attempt failed with a transient error."""


class ProtocolError(TranscriptionFailure):
    """A service response did not match the expected wire format."""


class EmptyAnswerError(TranscriptionFailure):
    """No usable audio or speech was captured for the question."""


class TranscriptionCancelledError(InterviewError):
    """The transcription was abandoned because the session is ending."""
