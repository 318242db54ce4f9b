"""
Reference to a finalized answer recording.
"""
import os
import logging
from dataclasses import dataclass

logger = logging.getLogger("audio_clip")


@dataclass(frozen=True)
class AudioClip:
    """A mono PCM16 WAV file on local disk, ready for upload."""
    path: str
    byte_length: int
    sample_rate: int
    channels: int = 1
    duration_seconds: float = 0.0

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def read_bytes(self) -> bytes:
        with open(self.path, "rb") as f:
            return f.read()

    def discard(self) -> None:
        """Delete the file; missing files are ignored."""
        try:
            os.remove(self.path)
            logger.debug(f"Discarded clip {self.path}")
        except FileNotFoundError:
            pass
