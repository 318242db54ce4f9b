import logging

from voiceprep.interview.events import (
    AnswerScoredEvent, AnswerSkippedEvent, ErrorOccurredEvent, EventLogger, EventType,
    InterviewEventBus, SessionMetrics, SessionStartedEvent, StatusChangedEvent
)


def test_subscribers_receive_matching_events_only():
    bus = InterviewEventBus()
    started, changed = [], []
    bus.subscribe(EventType.SESSION_STARTED, started.append)
    bus.subscribe(EventType.STATUS_CHANGED, changed.append)

    bus.emit(SessionStartedEvent("s1", 1.0, 3, "Backend Engineer"))

    assert len(started) == 1
    assert started[0].data == {"total_questions": 3, "job_title": "Backend Engineer"}
    assert changed == []


def test_global_handlers_see_every_event():
    bus = InterviewEventBus()
    seen = []
    bus.subscribe_all(seen.append)

    bus.emit(SessionStartedEvent("s1", 1.0, 2, None))
    bus.emit(StatusChangedEvent("s1", 2.0, "preparing", "speaking"))

    assert [e.event_type for e in seen] == [EventType.SESSION_STARTED, EventType.STATUS_CHANGED]


def test_failing_handler_is_logged_and_others_still_run(caplog):
    bus = InterviewEventBus()
    seen = []

    def broken(event):
        raise RuntimeError("handler blew up")

    bus.subscribe(EventType.STATUS_CHANGED, broken)
    bus.subscribe(EventType.STATUS_CHANGED, seen.append)

    with caplog.at_level(logging.ERROR, logger="events"):
        bus.emit(StatusChangedEvent("s1", 1.0, "idle", "preparing"))

    assert len(seen) == 1
    assert "handler blew up" in caplog.text


def test_unsubscribe_and_clear():
    bus = InterviewEventBus()
    seen = []
    bus.subscribe(EventType.STATUS_CHANGED, seen.append)
    bus.unsubscribe(EventType.STATUS_CHANGED, seen.append)
    bus.unsubscribe(EventType.STATUS_CHANGED, seen.append)

    bus.subscribe_all(seen.append)
    bus.clear_handlers()
    bus.emit(StatusChangedEvent("s1", 1.0, "idle", "preparing"))

    assert seen == []


def test_session_metrics_counts_late_scores_separately():
    metrics = SessionMetrics()
    metrics.handle_event(SessionStartedEvent("s1", 1.0, 2, None))
    metrics.handle_event(AnswerScoredEvent("s1", 2.0, "q1", 7.0, late=False))
    metrics.handle_event(AnswerScoredEvent("s1", 3.0, "q2", 5.0, late=True))
    metrics.handle_event(AnswerSkippedEvent("s1", 4.0, 2, "q3", "Recording was empty"))
    metrics.handle_event(ErrorOccurredEvent("s1", 5.0, "OSError", "disk", "session_store"))
    metrics.handle_event(StatusChangedEvent("s1", 6.0, "idle", "preparing"))

    snapshot = metrics.get_metrics()
    assert snapshot["sessions_started"] == 1
    assert snapshot["answers_scored"] == 2
    assert snapshot["late_scores"] == 1
    assert snapshot["answers_skipped"] == 1
    assert snapshot["errors_occurred"] == 1

    metrics.reset()
    assert all(value == 0 for value in metrics.get_metrics().values())


def test_event_logger_writes_event_summary(caplog):
    with caplog.at_level(logging.INFO, logger="event_logger"):
        EventLogger().handle_event(StatusChangedEvent("s42", 1.0, "speaking", "listening"))

    assert "status_changed" in caplog.text
    assert "s42" in caplog.text
