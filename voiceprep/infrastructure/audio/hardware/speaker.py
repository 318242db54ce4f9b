"""
WAV playback through the platform command-line player.
"""
import shutil
import logging
import subprocess
from typing import Optional, Sequence

logger = logging.getLogger("speaker")

# macOS player first, then ALSA
PLAYER_COMMANDS = (("afplay",), ("aplay", "-q"))


def find_player() -> Optional[Sequence[str]]:
    """Return the first available player command, or None."""
    for command in PLAYER_COMMANDS:
        if shutil.which(command[0]):
            return command
    return None


class WavPlayer:
    """Plays one WAV file at a time in a child process that can be killed."""

    def __init__(self, command: Optional[Sequence[str]] = None):
        self.command = list(command) if command else None
        self._process: Optional[subprocess.Popen] = None

    @property
    def available(self) -> bool:
        if self.command is None:
            found = find_player()
            self.command = list(found) if found else None
        return self.command is not None

    def play(self, wav_path: str) -> subprocess.Popen:
        """Start playback without waiting for it to finish."""
        if not self.available:
            raise FileNotFoundError("No audio player found (afplay/aplay)")
        self.stop()
        self._process = subprocess.Popen(
            self.command + [wav_path],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )
        return self._process

    def wait(self, process: Optional[subprocess.Popen] = None) -> int:
        """Block until playback ends; returns the player's exit code."""
        process = process or self._process
        if process is None:
            return 0
        _, stderr = process.communicate()
        if process.returncode not in (0, -15) and stderr:
            logger.warning(f"Player exited with {process.returncode}: {stderr.decode(errors='replace').strip()}")
        return process.returncode

    def stop(self) -> None:
        process = self._process
        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                process.kill()
