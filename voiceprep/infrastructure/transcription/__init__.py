"""Remote speech-to-text: upload, submit and poll."""

from .client import TranscriptionClient, TranscriptionOptions, merge_word_boost
from .models import Word, SentimentSegment, Entity, TranscriptionResult

__all__ = [
    "TranscriptionClient", "TranscriptionOptions", "merge_word_boost",
    "Word", "SentimentSegment", "Entity", "TranscriptionResult"
]
