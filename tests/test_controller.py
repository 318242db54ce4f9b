import os
import threading
import time

import pytest

from voiceprep.errors import (
    DeviceUnavailableError, InvalidTransitionError, TranscriptionError,
    TranscriptionTimeoutError, UploadError
)
from voiceprep.interview import EventType, InterviewEventBus, SessionStatus
from voiceprep.interview.testing import (
    FailingSessionStore, MockAnswerScorer, MockMicrophone, MockSpeechPrompt,
    cleanup_test_files, create_mock_interview_setup, sample_job_role, sample_questions
)


@pytest.fixture
def setup():
    created = []

    def factory(**kwargs):
        result = create_mock_interview_setup(**kwargs)
        created.append(result["temp_dir"])
        return result

    yield factory
    for temp_dir in created:
        cleanup_test_files(temp_dir)


def collect(controller, event_type):
    events = []
    controller.event_bus.subscribe(event_type, events.append)
    return events


def recordings(temp_dir):
    return [name for name in os.listdir(temp_dir) if name.endswith(".wav")]


def test_full_pass_records_every_question(setup):
    s = setup(transcripts=["First answer about scalability.", "We talked it through.", "I would profile it."])
    controller = s["controller"]
    questions = sample_questions(3)

    result = controller.run(questions, sample_job_role())

    assert controller.status == SessionStatus.COMPLETED
    assert len(result.answers) == len(questions)
    assert [a.question_id for a in result.answers] == ["q1", "q2", "q3"]
    assert [a.order for a in result.answers] == [0, 1, 2]
    assert result.answers[0].transcript == "First answer about scalability."
    assert result.answers[0].metrics.total_words == 4
    assert result.overall_score == pytest.approx(7.5)
    assert not result.ended_early
    assert controller.current_question_index == 3
    assert recordings(s["temp_dir"]) == []


def test_failed_transcriptions_still_complete_full_pass(setup):
    s = setup(transcripts=[
        UploadError("HTTP 500", status_code=500),
        TranscriptionError("corrupt audio", "job-2"),
        TranscriptionTimeoutError("job-3", 60),
    ])
    controller = s["controller"]
    failures = collect(controller, EventType.TRANSCRIPTION_FAILED)

    result = controller.run(sample_questions(3))

    assert controller.status == SessionStatus.COMPLETED
    assert len(result.answers) == 3
    assert [a.error for a in result.answers] == ["UploadError", "TranscriptionError", "TranscriptionTimeoutError"]
    assert all(a.transcript == "" and a.failed for a in result.answers)
    assert result.failed_count == 3
    assert result.overall_score is None
    assert len(failures) == 3
    assert controller.last_error.startswith("TranscriptionTimeoutError")


def test_upload_failure_then_early_end(setup):
    s = setup(transcripts=["I built a payment service in Python.", UploadError("HTTP 502", status_code=502)])
    controller = s["controller"]

    def end_on_third_question(event):
        if event.data["index"] == 2:
            controller.request_end()

    controller.event_bus.subscribe(EventType.QUESTION_ASKED, end_on_third_question)

    result = controller.run(sample_questions(3))

    assert controller.status == SessionStatus.COMPLETED
    assert len(result.answers) == 2
    assert result.answers[0].transcript == "I built a payment service in Python."
    assert result.answers[0].error is None
    assert result.answers[1].error == "UploadError"
    assert result.ended_early
    assert s["speech_prompt"].stop_calls >= 1
    assert recordings(s["temp_dir"]) == []


def test_cancel_while_listening_removes_recording(setup):
    s = setup(auto_stop=False)
    controller = s["controller"]
    capture = s["audio_capture"]
    outcome = {}

    runner = threading.Thread(target=lambda: outcome.update(result=controller.run(sample_questions(2))))
    runner.start()

    deadline = time.time() + 5
    while not capture.is_capturing and time.time() < deadline:
        time.sleep(0.01)
    assert capture.is_capturing
    assert controller.status == SessionStatus.LISTENING
    in_progress = capture.current_path

    controller.request_end()
    runner.join(timeout=5)

    assert not runner.is_alive()
    assert controller.status == SessionStatus.COMPLETED
    assert outcome["result"].answers == []
    assert not os.path.exists(in_progress)
    assert recordings(s["temp_dir"]) == []
    assert s["transcription_client"].calls == []


def test_end_during_transcription_discards_partial_answer(setup):
    s = setup(transcripts=["first", "second"])
    controller = s["controller"]
    s["transcription_client"].on_transcribe = lambda index: controller.request_end() if index == 1 else None

    result = controller.run(sample_questions(3))

    assert len(result.answers) == 1
    assert result.ended_early
    assert controller.status == SessionStatus.COMPLETED


def test_question_index_advances_by_one(setup):
    s = setup(transcripts=["a b c", "", "d e f", "g h"])
    controller = s["controller"]
    asked = collect(controller, EventType.QUESTION_ASKED)

    controller.run(sample_questions(4))

    assert [e.data["index"] for e in asked] == [0, 1, 2, 3]
    assert controller.current_question_index == 4


def test_empty_audio_records_skipped_placeholder(setup):
    s = setup(microphone=MockMicrophone(frames=[]), announce=True)
    controller = s["controller"]
    skipped = collect(controller, EventType.ANSWER_SKIPPED)

    result = controller.run(sample_questions(2))

    assert len(result.answers) == 2
    assert all(a.skipped and a.error == "EmptyAnswerError" for a in result.answers)
    assert s["transcription_client"].calls == []
    assert len(skipped) == 2
    assert result.skipped_count == 2
    assert result.overall_score is None
    assert any("didn't hear an answer" in m for m in s["speech_prompt"].spoken_messages)


def test_empty_transcript_is_skipped(setup):
    s = setup(transcripts=["", "A real answer here."])

    result = s["controller"].run(sample_questions(2))

    assert result.answers[0].skipped
    assert result.answers[0].error == "EmptyAnswerError"
    assert result.answers[1].transcript == "A real answer here."


def test_skipped_answers_carry_zero_weight_in_overall_score(setup):
    s = setup(transcripts=["Solid answer one.", "", "Solid answer three."],
              scorer=MockAnswerScorer(score=8.0))

    result = s["controller"].run(sample_questions(3))

    assert result.skipped_count == 1
    assert result.overall_score == pytest.approx(8.0)


def test_clip_is_deleted_after_transcription(setup):
    s = setup(transcripts=["one"])

    s["controller"].run(sample_questions(1))

    call = s["transcription_client"].calls[0]
    assert call["existed"]
    assert not os.path.exists(call["path"])


def test_word_boost_includes_role_terms_and_question_keywords(setup):
    s = setup(transcripts=["answer"])

    s["controller"].run(sample_questions(1), sample_job_role())

    boost = s["transcription_client"].calls[0]["word_boost"]
    assert "PostgreSQL" in boost
    assert "scalability" in boost
    assert "Kubernetes" in boost


def test_slow_scorer_does_not_block_and_late_score_is_kept(setup):
    scorer = MockAnswerScorer(score=6.0, delay=5.0)
    s = setup(transcripts=["answer one"], scorer=scorer, score_wait_seconds=0.2)
    controller = s["controller"]
    scored = collect(controller, EventType.ANSWER_SCORED)
    controller.event_bus.subscribe(EventType.ANSWER_RECORDED, lambda event: scorer.release())

    result = controller.run(sample_questions(1))

    assert result.answers[0].score is None
    assert scored and scored[-1].data["late"] is True
    assert result.score_for(result.answers[0]).overall_score == 6.0


class EndingScorer(MockAnswerScorer):
    """Asks the controller to end, then keeps scoring until released."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.controller = None
        self.ended_at = None

    def evaluate(self, *args, **kwargs):
        self.ended_at = time.time()
        self.controller.request_end()
        return super().evaluate(*args, **kwargs)


def test_end_during_scoring_is_honored_promptly(setup):
    scorer = EndingScorer(delay=10.0)
    s = setup(transcripts=["one", "two", "three"], scorer=scorer, score_wait_seconds=3.0)
    controller = s["controller"]
    scorer.controller = controller

    try:
        result = controller.run(sample_questions(3))
        elapsed = time.time() - scorer.ended_at
    finally:
        scorer.release()

    assert elapsed < 1.0
    assert result.answers == []
    assert result.ended_early
    assert result.late_scores == {}
    assert controller.status == SessionStatus.COMPLETED
    assert len(s["transcription_client"].calls) == 1


def test_early_end_does_not_wait_for_pending_scores(setup):
    scorer = MockAnswerScorer(delay=10.0)
    s = setup(transcripts=["one", "two"], scorer=scorer, score_wait_seconds=1.0)
    controller = s["controller"]
    listening = []

    def end_on_second_answer(event):
        if event.data["current"] == SessionStatus.LISTENING.value:
            listening.append(time.time())
            if len(listening) == 2:
                controller.request_end()

    controller.event_bus.subscribe(EventType.STATUS_CHANGED, end_on_second_answer)

    try:
        result = controller.run(sample_questions(2))
        elapsed = time.time() - listening[-1]
    finally:
        scorer.release()

    assert elapsed < 0.5
    assert len(result.answers) == 1
    assert result.answers[0].score is None
    assert result.ended_early


def test_scorer_failure_is_not_fatal(setup):
    s = setup(transcripts=["answer"], scorer=MockAnswerScorer(error=RuntimeError("LLM down")))
    controller = s["controller"]
    errors = collect(controller, EventType.ERROR_OCCURRED)

    result = controller.run(sample_questions(1))

    assert result.answers[0].score is None
    assert result.answers[0].transcript == "answer"
    assert errors[0].data["component"] == "answer_scorer"


def test_scorer_receives_question_context(setup):
    s = setup(transcripts=["I would add caching after profiling."])

    s["controller"].run(sample_questions(3)[2:], sample_job_role())

    call = s["scorer"].calls[0]
    assert call["expected_keywords"] == ("profiling", "caching")
    assert call["context"]["question_type"] == "situational"
    assert call["context"]["job_title"] == "Backend Engineer"
    assert "coherence" in call["context"]["analysis"]


def test_initialization_failure_moves_to_error(setup):
    s = setup(microphone=MockMicrophone(fail_probe=True))
    controller = s["controller"]
    errors = collect(controller, EventType.ERROR_OCCURRED)

    with pytest.raises(DeviceUnavailableError):
        controller.run(sample_questions(2))

    assert controller.status == SessionStatus.ERROR
    assert controller.last_error.startswith("DeviceUnavailableError")
    assert errors[0].data["component"] == "initialization"

    with pytest.raises(InvalidTransitionError):
        controller.start(sample_questions(1))


def test_reset_leaves_error_and_allows_a_new_session(setup):
    s = setup(microphone=MockMicrophone(fail_probe=True), transcripts=["hello there"])
    controller = s["controller"]
    with pytest.raises(DeviceUnavailableError):
        controller.run(sample_questions(1))

    controller.reset()
    s["microphone"].fail_probe = False
    result = controller.run(sample_questions(1))

    assert controller.status == SessionStatus.COMPLETED
    assert len(result.answers) == 1


def test_reset_is_rejected_when_idle(setup):
    controller = setup()["controller"]

    with pytest.raises(InvalidTransitionError):
        controller.reset()


def test_empty_question_list_is_rejected(setup):
    controller = setup()["controller"]

    with pytest.raises(ValueError):
        controller.run([])

    assert controller.status == SessionStatus.IDLE


def test_microphone_lost_mid_session_degrades_one_answer(setup):
    microphone = MockMicrophone()
    s = setup(transcripts=["first", "third"], microphone=microphone)
    controller = s["controller"]
    s["audio_capture"].open_retries = 1

    def break_microphone(event):
        microphone.fail_open = microphone.open_calls + (1 if event.data["index"] == 1 else 0)

    controller.event_bus.subscribe(EventType.QUESTION_ASKED, break_microphone)

    result = controller.run(sample_questions(3))

    assert [a.error for a in result.answers] == [None, "DeviceUnavailableError", None]
    assert controller.status == SessionStatus.COMPLETED


def test_playback_failure_does_not_stop_the_session(setup):
    s = setup(transcripts=["one", "two"])
    s["controller"].speech_prompt = MockSpeechPrompt(fail_on=("Question 1",))

    result = s["controller"].run(sample_questions(2))

    assert len(result.answers) == 2
    assert s["controller"].last_error.startswith("SpeechPlaybackError")


def test_status_transitions_follow_the_state_machine(setup):
    s = setup(transcripts=["one"])
    controller = s["controller"]
    changes = collect(controller, EventType.STATUS_CHANGED)

    controller.run(sample_questions(1))

    path = [e.data["current"] for e in changes]
    assert path == ["preparing", "speaking", "listening", "processing", "completed"]
    store_doc = s["session_store"].get(controller.session.id)
    assert store_doc["status"] == "completed"
    assert len(store_doc["answers"]) == 1


def test_store_failures_do_not_stop_the_session(setup):
    s = setup(transcripts=["one", "two"])
    controller = s["controller"]
    controller.session_store = FailingSessionStore()
    errors = collect(controller, EventType.ERROR_OCCURRED)

    result = controller.run(sample_questions(2))

    assert len(result.answers) == 2
    assert [e.data["component"] for e in errors] == ["session_store", "session_store"]


def test_announcements_are_spoken_in_order(setup):
    s = setup(transcripts=["one", "two"], announce=True)

    s["controller"].run(sample_questions(2), sample_job_role())

    messages = s["speech_prompt"].spoken_messages
    assert messages[0].startswith("Hello! Welcome")
    assert messages[1].startswith("Question 1 of 2:")
    assert messages[2].startswith("Question 2 of 2:")
    assert messages[-1].startswith("Thank you for completing")


def test_snapshot_reports_progress(setup):
    s = setup(transcripts=["one"])
    controller = s["controller"]
    snapshots = []
    controller.event_bus.subscribe(EventType.ANSWER_RECORDED, lambda e: snapshots.append(controller.snapshot()))

    controller.run(sample_questions(2))

    assert snapshots[0].status == SessionStatus.PROCESSING
    assert snapshots[0].total_questions == 2
    assert snapshots[0].answers_recorded == 0
    final = controller.snapshot()
    assert final.status == SessionStatus.COMPLETED
    assert final.answers_recorded == 2
    assert final.amplitude == 0.0


def test_independent_controllers_run_concurrently(setup):
    first = setup(transcripts=["alpha one", "alpha two"])
    second = setup(transcripts=["beta one", "beta two"])
    results = {}

    threads = [
        threading.Thread(target=lambda: results.update(a=first["controller"].run(sample_questions(2)))),
        threading.Thread(target=lambda: results.update(b=second["controller"].run(sample_questions(2)))),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert [a.transcript for a in results["a"].answers] == ["alpha one", "alpha two"]
    assert [a.transcript for a in results["b"].answers] == ["beta one", "beta two"]
