"""
VoicePrep Configuration System
==============================

This file contains ALL configuration for the mock-interview engine.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the interview
# =============================================================================

# REQUIRED: transcription service key (or set ASSEMBLYAI_API_KEY)
ASSEMBLYAI_API_KEY = None

# Optional: Google Cloud project for LLM scoring / question generation
GOOGLE_CLOUD_PROJECT = None
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Interview settings
NUM_QUESTIONS = 5
DIFFICULTY = "medium"
DEFAULT_JOB_ROLE = "Software Engineer"
WORKDIR = "./_sessions"
ANNOUNCE_PROMPTS = True

# Speech settings
ENABLE_TTS = True
TTS_VOICE = "en-US-Neural2-F"
LANGUAGE_CODE = "en-US"

# Logging
LOG_FILE = "./_sessions/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Audio capture
SAMPLE_RATE_CAPTURE = 48000
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
FRAME_MS = 30
TARGET_RMS = 0.06
MIN_CLIP_BYTES = 1024
MIN_ANSWER_SECONDS = 0.5
MIC_OPEN_RETRIES = 3
# Recordings left behind by a crash are swept after this long
RECORDING_MAX_AGE_SECONDS = 24 * 3600

# Speech synthesis
TTS_SAMPLE_RATE = 16000

# Transcription service
ASSEMBLYAI_BASE_URL = "https://api.assemblyai.com/v2"
POLL_INTERVAL_SECONDS = 3.0
MAX_POLL_ATTEMPTS = 60
HTTP_TIMEOUT = 60

# Question time limit used when a question carries none
DEFAULT_TIME_LIMIT_SECONDS = 120

# Scoring
SCORE_WAIT_SECONDS = 15.0
SCORE_MAX_RETRIES = 3
SCORE_BACKOFF_SECONDS = 2.0
# How often a wait on the scorer checks for an end request
SCORE_POLL_SECONDS = 0.1

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.5-flash-lite"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 1024


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    assemblyai_api_key: str
    assemblyai_base_url: str = ASSEMBLYAI_BASE_URL
    google_cloud_project: Optional[str] = None
    google_application_credentials: Optional[str] = None
    num_questions: int = NUM_QUESTIONS
    difficulty: str = DIFFICULTY
    job_role: str = DEFAULT_JOB_ROLE
    workdir: str = WORKDIR
    announce_prompts: bool = ANNOUNCE_PROMPTS
    enable_tts: bool = ENABLE_TTS
    tts_voice: str = TTS_VOICE
    language_code: str = LANGUAGE_CODE
    poll_interval: float = POLL_INTERVAL_SECONDS
    max_poll_attempts: int = MAX_POLL_ATTEMPTS
    score_wait_seconds: float = SCORE_WAIT_SECONDS
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    @property
    def llm_enabled(self) -> bool:
        return bool(self.google_cloud_project)


def get_config() -> Config:
    """Load configuration."""
    api_key = os.getenv("ASSEMBLYAI_API_KEY") or ASSEMBLYAI_API_KEY
    if not api_key:
        raise ValueError("Please set ASSEMBLYAI_API_KEY in config.py or as environment variable")

    workdir = os.getenv("VOICEPREP_WORKDIR") or WORKDIR
    return Config(
        assemblyai_api_key=api_key,
        assemblyai_base_url=os.getenv("ASSEMBLYAI_BASE_URL") or ASSEMBLYAI_BASE_URL,
        google_cloud_project=os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT,
        google_application_credentials=os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS,
        workdir=workdir,
        log_file=os.path.join(workdir, "interview.log"),
        log_level=os.getenv("VOICEPREP_LOG_LEVEL") or LOG_LEVEL,
    )
