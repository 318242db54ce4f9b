"""
Wire-format models for the transcription service (AssemblyAI v2).

Each protocol step has its own response model; anything that does not
validate is rejected as a ProtocolError at the boundary.
"""
import json
from typing import List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...errors import ProtocolError

JobStatus = Literal["queued", "processing", "completed", "error"]


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UploadResponse(WireModel):
    upload_url: str = Field(min_length=1)


class SubmitResponse(WireModel):
    id: str = Field(min_length=1)
    status: Optional[JobStatus] = None


class WireWord(WireModel):
    text: str
    start: int
    end: int
    confidence: float = Field(ge=0.0, le=1.0)


class WireSentiment(WireModel):
    text: str = ""
    sentiment: str = "NEUTRAL"
    confidence: float = 0.0
    start: Optional[int] = None
    end: Optional[int] = None


class WireEntity(WireModel):
    entity_type: str = ""
    text: str = ""


class PollResponse(WireModel):
    id: Optional[str] = None
    status: JobStatus
    text: Optional[str] = None
    words: Optional[List[WireWord]] = None
    confidence: Optional[float] = None
    audio_duration: Optional[float] = None
    error: Optional[str] = None
    sentiment_analysis_results: Optional[List[WireSentiment]] = None
    entities: Optional[List[WireEntity]] = None


M = TypeVar("M", bound=WireModel)


def parse_payload(model: Type[M], body, step: str) -> M:
    """
    Validate a decoded JSON body (or raw text) against a wire model.
    
    Raises:
        ProtocolError: Body is not JSON or does not match the model
    """
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except ValueError as e:
            raise ProtocolError(f"{step}: response is not JSON: {e}") from e
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise ProtocolError(f"{step}: malformed response: {e.error_count()} validation error(s): {e}") from e


def parse_response(model: Type[M], response, step: str) -> M:
    """Decode and validate a requests.Response."""
    try:
        body = response.json()
    except ValueError as e:
        raise ProtocolError(f"{step}: response is not JSON: {e}") from e
    return parse_payload(model, body, step)
