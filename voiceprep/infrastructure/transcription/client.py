"""
REST client for the three-step transcription protocol: upload, submit, poll.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

import requests

from ...config import (
    ASSEMBLYAI_BASE_URL, POLL_INTERVAL_SECONDS, MAX_POLL_ATTEMPTS,
    HTTP_TIMEOUT, LANGUAGE_CODE
)
from ...errors import (
    UploadError, SubmitError, TranscriptionError, TranscriptionTimeoutError,
    PollError, TranscriptionCancelledError
)
from ..audio.clip import AudioClip
from .models import Word, SentimentSegment, Entity, TranscriptionResult
from .schemas import UploadResponse, SubmitResponse, PollResponse, parse_response

logger = logging.getLogger("transcription")


@dataclass
class TranscriptionOptions:
    """Job options sent with every submit."""
    punctuate: bool = True
    format_text: bool = True
    language_code: str = LANGUAGE_CODE
    # Keep "um"/"uh" in the transcript so filler words can be counted
    disfluencies: bool = True
    sentiment_analysis: bool = True
    entity_detection: bool = True
    word_boost: List[str] = field(default_factory=list)
    boost_param: Optional[str] = "default"

    def to_request(self, audio_url: str, extra_boost: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "audio_url": audio_url,
            "punctuate": self.punctuate,
            "format_text": self.format_text,
            "language_code": self.language_code,
            "disfluencies": self.disfluencies,
            "sentiment_analysis": self.sentiment_analysis,
            "entity_detection": self.entity_detection,
        }
        boost = merge_word_boost(self.word_boost, extra_boost or [])
        if boost:
            body["word_boost"] = boost
            if self.boost_param:
                body["boost_param"] = self.boost_param
        return body


def merge_word_boost(*term_lists: Iterable[str]) -> List[str]:
    """Concatenate term lists, dropping blanks and case-insensitive duplicates."""
    seen = set()
    merged = []
    for terms in term_lists:
        for term in terms:
            term = term.strip()
            if term and term.lower() not in seen:
                seen.add(term.lower())
                merged.append(term)
    return merged


class TranscriptionClient:
    """
    Transcribes one AudioClip per call.

    The client keeps no per-clip state, so a failed transcribe() can be
    retried from the upload step. Poll interval and attempt budget are
    constructor parameters.
    """

    def __init__(self,
                 api_key: str,
                 base_url: str = ASSEMBLYAI_BASE_URL,
                 poll_interval: float = POLL_INTERVAL_SECONDS,
                 max_poll_attempts: int = MAX_POLL_ATTEMPTS,
                 timeout: float = HTTP_TIMEOUT,
                 options: Optional[TranscriptionOptions] = None,
                 session: Optional[requests.Session] = None):
        if poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        if max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be >= 1")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.timeout = timeout
        self.options = options or TranscriptionOptions()
        self.session = session

    def initialize(self) -> None:
        """
        Check credentials and open the HTTP session.

        Raises:
            ValueError: No API key configured
        """
        if not self.api_key:
            raise ValueError("Transcription API key is not configured")
        if self.session is None:
            self.session = requests.Session()
        logger.info(f"Transcription client ready ({self.base_url}, "
                    f"{self.max_poll_attempts} polls every {self.poll_interval:.1f}s)")

    def _headers(self, content_type: str = "application/json") -> Dict[str, str]:
        return {"authorization": self.api_key, "content-type": content_type}

    def _session(self) -> requests.Session:
        if self.session is None:
            self.session = requests.Session()
        return self.session

    def upload(self, audio: Union[AudioClip, bytes]) -> str:
        """
        Step 1: send raw audio bytes.

        Returns:
            Upload URL referencing the stored audio

        Raises:
            UploadError: I/O failure or non-2xx response
            ProtocolError: Response missing the upload URL
        """
        if isinstance(audio, AudioClip):
            try:
                data = audio.read_bytes()
            except OSError as e:
                raise UploadError(f"Cannot read clip {audio.path}: {e}") from e
        else:
            data = audio

        try:
            resp = self._session().post(
                f"{self.base_url}/upload",
                headers=self._headers("application/octet-stream"),
                data=data,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UploadError(f"Upload request failed: {e}") from e

        if not resp.ok:
            raise UploadError(f"Upload failed with HTTP {resp.status_code}: {resp.text[:200]}",
                              status_code=resp.status_code)

        upload_url = parse_response(UploadResponse, resp, "upload").upload_url
        logger.info(f"Uploaded {len(data)} bytes")
        return upload_url

    def submit(self, upload_url: str, word_boost: Optional[Iterable[str]] = None) -> str:
        """
        Step 2: create a transcription job.

        Returns:
            Job id

        Raises:
            SubmitError: Request failed or non-2xx response
            ProtocolError: Response missing the job id
        """
        body = self.options.to_request(upload_url, word_boost)
        try:
            resp = self._session().post(
                f"{self.base_url}/transcript",
                headers=self._headers(),
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SubmitError(f"Submit request failed: {e}") from e

        if not resp.ok:
            raise SubmitError(f"Submit failed with HTTP {resp.status_code}: {resp.text[:200]}",
                              status_code=resp.status_code)

        job_id = parse_response(SubmitResponse, resp, "submit").id
        logger.info(f"Submitted transcription job {job_id} "
                    f"({len(body.get('word_boost', []))} boosted terms)")
        return job_id

    def poll(self, job_id: str, cancel_event: Optional[threading.Event] = None) -> TranscriptionResult:
        """
        Step 3: poll the job until it reaches a terminal status.

        A transient request failure uses up an attempt like a pending
        status does. No wait follows the final attempt.

        Raises:
            TranscriptionError: The service reported the job failed
            TranscriptionTimeoutError: Still pending after the last attempt
            PollError: The last attempt failed with a transient error
            ProtocolError: Malformed status payload
            TranscriptionCancelledError: cancel_event was set
        """
        cancel_event = cancel_event or threading.Event()
        url = f"{self.base_url}/transcript/{job_id}"
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_poll_attempts + 1):
            if cancel_event.is_set():
                raise TranscriptionCancelledError(f"Polling of job {job_id} cancelled")

            try:
                resp = self._session().get(url, headers=self._headers(), timeout=self.timeout)
                resp.raise_for_status()
            except requests.RequestException as e:
                last_error = e
                logger.warning(f"Poll {attempt}/{self.max_poll_attempts} for job {job_id} failed: {e}")
            else:
                last_error = None
                payload = parse_response(PollResponse, resp, "poll")
                if payload.status == "completed":
                    logger.info(f"Job {job_id} completed after {attempt} poll(s)")
                    return self._to_result(job_id, payload)
                if payload.status == "error":
                    raise TranscriptionError(payload.error or "unknown error", job_id)
                logger.debug(f"Job {job_id} {payload.status} (poll {attempt}/{self.max_poll_attempts})")

            if attempt < self.max_poll_attempts:
                if cancel_event.wait(self.poll_interval):
                    raise TranscriptionCancelledError(f"Polling of job {job_id} cancelled")

        if last_error is not None:
            raise PollError(f"Polling job {job_id} failed on the last of "
                            f"{self.max_poll_attempts} attempts: {last_error}") from last_error
        raise TranscriptionTimeoutError(job_id, self.max_poll_attempts)

    def transcribe(self,
                   clip: Union[AudioClip, bytes],
                   word_boost: Optional[Iterable[str]] = None,
                   cancel_event: Optional[threading.Event] = None) -> TranscriptionResult:
        """Run upload, submit and poll in sequence for one clip."""
        cancel_event = cancel_event or threading.Event()

        upload_url = self.upload(clip)
        if cancel_event.is_set():
            raise TranscriptionCancelledError("Transcription cancelled after upload")

        job_id = self.submit(upload_url, word_boost)
        if cancel_event.is_set():
            raise TranscriptionCancelledError(f"Transcription cancelled after submitting job {job_id}")

        return self.poll(job_id, cancel_event)

    @staticmethod
    def _to_result(job_id: str, payload: PollResponse) -> TranscriptionResult:
        words = tuple(
            Word(text=w.text, start_ms=w.start, end_ms=w.end, confidence=w.confidence)
            for w in payload.words or []
        )
        sentiment = tuple(
            SentimentSegment(text=s.text, sentiment=s.sentiment.upper(), confidence=s.confidence,
                             start_ms=s.start, end_ms=s.end)
            for s in payload.sentiment_analysis_results or []
        )
        entities = tuple(Entity(entity_type=e.entity_type, text=e.text) for e in payload.entities or [])

        duration = payload.audio_duration
        if duration is None:
            duration = words[-1].end_ms / 1000.0 if words else 0.0

        return TranscriptionResult(
            job_id=job_id,
            text=payload.text or "",
            confidence=payload.confidence or 0.0,
            audio_duration=float(duration),
            words=words,
            sentiment=sentiment,
            entities=entities,
        )
