#!/usr/bin/env python3
"""
Main entry point for the VoicePrep mock-interview engine.
Allows running the package with: python -m voiceprep
"""
import os
import sys
import threading
from typing import Dict, Optional

from .config import get_config, DEFAULT_TIME_LIMIT_SECONDS
from .utils import setup_logging
from .infrastructure import (
    AudioCapture, GoogleSpeechSynthesizer, SpeechPrompt, TranscriptionClient, TranscriptionOptions
)
from .interview import (
    InterviewSessionController, InterviewEventBus, EventLogger, SessionMetrics, EventType,
    JobRole, InterviewResult, JsonSessionStore, KeywordAnswerScorer, LLMAnswerScorer,
    StaticQuestionSource, LLMQuestionSource, SessionStatus
)
from .interview.prompts import format_question_list

VALID_DIFFICULTIES = ("easy", "medium", "hard")


def _flag_value(name: str) -> Optional[str]:
    prefix = f"--{name}="
    for arg in sys.argv[1:]:
        if arg.startswith(prefix):
            return arg[len(prefix):]
    return None


class ConsoleReporter:
    """Prints session progress and arms the per-question answer timer."""

    def __init__(self, controller: InterviewSessionController):
        self.controller = controller
        self._time_limits: Dict[str, int] = {}
        self._current_limit = DEFAULT_TIME_LIMIT_SECONDS
        self._timer: Optional[threading.Timer] = None

    def register_questions(self, questions) -> None:
        for q in questions:
            self._time_limits[q.id] = q.time_limit_seconds or DEFAULT_TIME_LIMIT_SECONDS

    def handle_event(self, event) -> None:
        data = event.data
        if event.event_type == EventType.QUESTION_ASKED:
            self._current_limit = self._time_limits.get(data["question_id"], DEFAULT_TIME_LIMIT_SECONDS)
            print(f"\n❓ Question {data['index'] + 1}: {data['question_text']}")
        elif event.event_type == EventType.STATUS_CHANGED:
            if data["current"] == SessionStatus.LISTENING.value:
                print(f"🎙️  Recording... press Enter when done (limit {self._current_limit}s, 'q' + Enter to end)")
                self._arm_timer()
            elif data["previous"] == SessionStatus.LISTENING.value:
                self._disarm_timer()
            if data["current"] == SessionStatus.PROCESSING.value:
                print("🤔 Transcribing answer...")
        elif event.event_type == EventType.ANSWER_RECORDED:
            metrics = data["metrics"]
            print(f"📝 \"{data['transcript']}\"")
            print(f"   {metrics['words_per_minute']:.0f} wpm, clarity {metrics['clarity_score']:.2f}, "
                  f"{metrics['filler_word_count']} filler words")
        elif event.event_type == EventType.ANSWER_SKIPPED:
            print(f"⏭️  No answer recorded ({data['reason']})")
        elif event.event_type == EventType.TRANSCRIPTION_FAILED:
            print(f"⚠️  Transcription failed ({data['error_type']}); moving on")
        elif event.event_type == EventType.ANSWER_SCORED and not data["late"]:
            print(f"🔢 Score: {data['overall_score']:.1f}/10")

    def _arm_timer(self) -> None:
        self._disarm_timer()
        self._timer = threading.Timer(self._current_limit, self.controller.request_stop)
        self._timer.daemon = True
        self._timer.start()

    def close(self) -> None:
        self._disarm_timer()

    def _disarm_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


def _read_keys(controller: InterviewSessionController) -> None:
    """Enter finishes an answer, 'q' ends the interview."""
    for line in sys.stdin:
        if line.strip().lower() in ("q", "quit", "end"):
            controller.request_end()
            return
        controller.request_stop()


def print_results(result: InterviewResult, log_file: str) -> None:
    print("\n" + "=" * 50)
    print("🛑 INTERVIEW ENDED EARLY" if result.ended_early else "🎯 INTERVIEW COMPLETE")
    print("=" * 50)
    for answer in result.answers:
        score = result.score_for(answer)
        if answer.skipped:
            status = "⏭️  skipped"
        elif answer.failed:
            status = f"⚠️  {answer.error}"
        elif score is not None:
            status = f"🔢 {score.overall_score:.1f}/10"
        else:
            status = "✅ recorded"
        print(f"Q{answer.order + 1}. {answer.question_text}\n    {status}")
        if score is not None and score.detailed_feedback:
            print(f"    💬 {score.detailed_feedback}")
    print("-" * 50)
    print(f"📊 Answered {result.answered_count}/{result.total_questions} "
          f"(skipped {result.skipped_count}, failed {result.failed_count})")
    if result.overall_score is not None:
        print(f"🔢 Overall Score: {result.overall_score:.1f}/10")
    if result.average_words_per_minute:
        print(f"🗣️  Pace: {result.average_words_per_minute:.0f} wpm, clarity {result.average_clarity:.2f}")
    print(f"📁 Full details logged to: {log_file}")


def main():
    """Command-line interface for a spoken mock interview."""

    # Load configuration from environment
    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    explicit_tts = "--tts" in sys.argv or "--speech" in sys.argv
    explicit_text = "--text" in sys.argv or "--no-tts" in sys.argv
    if explicit_text:
        use_tts = False
    elif explicit_tts:
        use_tts = True
    else:
        use_tts = config.enable_tts
    use_llm = config.llm_enabled and "--no-llm" not in sys.argv

    num_questions = config.num_questions
    raw_count = _flag_value("questions")
    if raw_count is not None:
        try:
            num_questions = max(1, int(raw_count))
        except ValueError:
            print("❌ Invalid question count. Use --questions=N")
            sys.exit(1)

    difficulty = (_flag_value("difficulty") or config.difficulty).lower()
    if difficulty not in VALID_DIFFICULTIES:
        print(f"❌ Invalid difficulty. Use --difficulty={'|'.join(VALID_DIFFICULTIES)}")
        sys.exit(1)

    skills = tuple(s.strip() for s in (_flag_value("skills") or "").split(",") if s.strip())
    job_role = JobRole(
        title=_flag_value("role") or config.job_role,
        category=_flag_value("category") or "Technology",
        required_skills=skills,
    )

    setup_logging(config.log_file, config.log_level)

    if use_tts:
        print("🔊 TTS Mode: questions will be spoken aloud (default)")
        print("   (Use --text or --no-tts to disable speech)")
    else:
        print("📝 Text Mode: questions will be displayed as text only")

    if use_llm:
        from .infrastructure.llm import VertexRestClient
        llm_client = VertexRestClient(project=config.google_cloud_project,
                                      credentials_json=config.google_application_credentials)
        question_source = LLMQuestionSource(llm_client)
        scorer = LLMAnswerScorer(llm_client)
        print("🧠 Gemini scoring enabled")
    else:
        question_source = StaticQuestionSource()
        scorer = KeywordAnswerScorer()
        print("🧮 Keyword scoring (set GOOGLE_CLOUD_PROJECT for Gemini scoring)")

    questions = question_source.get_questions(job_role, num_questions, difficulty)
    print(f"\n🎙️  {job_role.title} interview - {len(questions)} questions ({difficulty})")
    print(format_question_list([q.text for q in questions]))

    event_bus = InterviewEventBus()
    metrics = SessionMetrics()
    event_bus.subscribe_all(EventLogger().handle_event)
    event_bus.subscribe_all(metrics.handle_event)

    controller = InterviewSessionController(
        speech_prompt=SpeechPrompt(
            use_tts=use_tts,
            synthesizer=GoogleSpeechSynthesizer(voice=config.tts_voice, language_code=config.language_code),
        ),
        audio_capture=AudioCapture(output_dir=os.path.join(config.workdir, "recordings")),
        transcription_client=TranscriptionClient(
            api_key=config.assemblyai_api_key,
            base_url=config.assemblyai_base_url,
            poll_interval=config.poll_interval,
            max_poll_attempts=config.max_poll_attempts,
            options=TranscriptionOptions(language_code=config.language_code),
        ),
        answer_scorer=scorer,
        session_store=JsonSessionStore(config.workdir),
        event_bus=event_bus,
        announce=config.announce_prompts,
        score_wait_seconds=config.score_wait_seconds,
    )
    reporter = ConsoleReporter(controller)
    reporter.register_questions(questions)
    event_bus.subscribe_all(reporter.handle_event)

    print(f"📝 Detailed logs: {config.log_file}")
    print("=" * 50)

    outcome: Dict[str, object] = {}

    def run_session():
        try:
            outcome["result"] = controller.run(questions, job_role)
        except Exception as e:
            outcome["error"] = e

    runner = threading.Thread(target=run_session, name="interview-session")
    runner.start()
    threading.Thread(target=_read_keys, args=(controller,), name="keyboard", daemon=True).start()

    while runner.is_alive():
        try:
            runner.join(timeout=0.5)
        except KeyboardInterrupt:
            print("\n🛑 Ending interview...")
            controller.request_end()

    reporter.close()
    if "error" in outcome:
        print(f"❌ Interview could not run: {outcome['error']}")
        sys.exit(1)

    print_results(outcome["result"], config.log_file)
    print(f"📈 Session metrics: {metrics.get_metrics()}")


if __name__ == "__main__":
    main()
