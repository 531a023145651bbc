"""Tests for the quiz session state machine."""
import asyncio
from unittest.mock import MagicMock

import pytest

from cert_tutor.models import ResultSummary, SessionState
from cert_tutor.session import QuizSession
from conftest import make_question


def _started(scheduler, questions, weights, **kwargs):
    duration = kwargs.pop("duration_limit", None)
    session = QuizSession(scheduler, **kwargs)
    session.start(questions, weights, duration_limit=duration)
    return session


def test_start_requires_questions(scheduler, weights):
    session = QuizSession(scheduler)
    with pytest.raises(ValueError):
        session.start([], weights)
    assert session.state is SessionState.IDLE


def test_start_twice_raises(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    with pytest.raises(RuntimeError):
        session.start(questions, weights)


def test_start_resets_state(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    assert session.state is SessionState.ACTIVE
    assert session.current_index == 0
    assert session.answered_count == 0
    assert session.started_at == 0.0
    assert session.remaining_seconds is None


def test_answer_persists_across_navigation(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    assert session.answer("q1", ["a"]) is True
    session.next()
    session.prev()
    assert session.current_answer == ("A",)
    assert session.answer_for("q1") == ("A",)


def test_answer_does_not_advance(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.answer("q1", ["A"])
    assert session.current_index == 0


def test_answer_wrong_count_is_rejected(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    assert session.answer("q2", ["B", "C"]) is True
    assert session.answer("q2", ["B"]) is False
    assert session.answer("q2", ["A", "B", "C"]) is False
    assert session.answer_for("q2") == ("B", "C")


def test_answer_is_normalized(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    assert session.answer("q2", [" c", "b", "B"]) is True
    assert session.answer_for("q2") == ("B", "C")


def test_answer_rejects_unknown_labels_and_ids(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    assert session.answer("q1", ["Z"]) is False
    assert session.answer("missing", ["A"]) is False
    assert session.answered_count == 0


def test_clear_answer(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.answer("q1", ["A"])
    assert session.clear_answer("q1") is True
    assert session.answer_for("q1") is None
    assert session.clear_answer("q1") is False


def test_mark_is_idempotent_and_independent(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.mark("q1", True)
    session.mark("q1", True)
    assert session.is_marked("q1")
    assert session.marked_count == 1
    assert session.answer_for("q1") is None
    session.mark("q1", False)
    assert not session.is_marked("q1")


def test_toggle_mark(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.toggle_mark("q2")
    assert session.is_marked("q2")
    session.toggle_mark("q2")
    assert not session.is_marked("q2")


def test_navigation_clamps(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.prev()
    assert session.current_index == 0
    session.jump_to(10)
    assert session.current_index == 2
    session.next()
    assert session.current_index == 2
    session.jump_to(-3)
    assert session.current_index == 0


def test_unanswered_navigation_allowed(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.next()
    session.next()
    assert session.current_question.content_id == "q3"


def test_question_status(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.answer("q1", ["A"])
    session.mark("q3", True)
    assert [session.question_status(i) for i in range(3)] == ["answered", "pending", "marked"]
    assert session.question_status(9) == "pending"


def test_relocalize_keeps_position_and_answers(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.answer("q2", ["B", "C"])
    session.jump_to(1)
    pt = [make_question(q.content_id, q.domain, tuple(q.answer_key), language="pt-BR") for q in questions]
    assert session.relocalize(pt) is True
    assert session.current_index == 1
    assert session.current_question.content_id == "q2"
    assert session.current_question.language == "pt-BR"
    assert session.current_answer == ("B", "C")


def test_relocalize_rejects_different_order(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    assert session.relocalize(list(reversed(questions))) is False
    assert session.current_question.content_id == "q1"


def test_finalize_returns_summary(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.answer("q1", ["A"])
    summary = session.finalize()
    assert session.state is SessionState.TERMINAL
    assert summary.correct == 1
    assert summary.total == 3
    assert session.finalize() is summary


def test_operations_ignored_after_finalize(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    session.finalize()
    assert session.answer("q1", ["A"]) is False
    assert session.mark("q1", True) is False
    assert session.next() is False


def test_finalize_never_raises(scheduler, questions, weights):
    def broken(*args):
        raise KeyError("domain")

    session = _started(scheduler, questions, weights, scorer=broken)
    session.answer("q1", ["A"])
    summary = session.finalize()
    assert (summary.correct, summary.total, summary.score) == (0, 3, 100)
    assert session.state is SessionState.TERMINAL


def test_on_finalize_failure_is_swallowed(scheduler, questions, weights):
    callback = MagicMock(side_effect=RuntimeError("ui gone"))
    session = _started(scheduler, questions, weights, on_finalize=callback)
    summary = session.finalize()
    callback.assert_called_once_with(summary)
    assert session.state is SessionState.TERMINAL


def test_countdown_auto_finalizes_once(scheduler, questions, weights):
    callback = MagicMock()
    session = _started(scheduler, questions, weights, duration_limit=3, on_finalize=callback)
    scheduler.advance(2)
    assert session.remaining_seconds == 1
    assert session.state is SessionState.ACTIVE
    scheduler.advance(1)
    assert session.remaining_seconds == 0
    assert session.state is SessionState.TERMINAL
    scheduler.advance(10)
    callback.assert_called_once()
    assert scheduler.pending() == 0


def test_finalize_cancels_countdown(scheduler, questions, weights):
    session = _started(scheduler, questions, weights, duration_limit=60)
    session.finalize()
    assert scheduler.pending() == 0
    scheduler.advance(120)
    assert session.remaining_seconds == 60


def test_close_cancels_countdown(scheduler, questions, weights):
    session = _started(scheduler, questions, weights, duration_limit=5)
    session.close()
    scheduler.advance(10)
    assert session.state is SessionState.ACTIVE
    assert session.summary is None


def test_answer_recorded_after_control_returns(scheduler, questions, weights):
    recorder = MagicMock()
    session = _started(scheduler, questions, weights, recorder=recorder, session_id="s1")
    scheduler.advance(7)
    session.answer("q1", ["a"])
    recorder.record_answer.assert_not_called()
    scheduler.run_pending()
    recorder.record_answer.assert_called_once_with("s1", "q1", ("A",), True, 7)


def test_persistence_failure_does_not_block(scheduler, questions, weights):
    recorder = MagicMock()
    recorder.record_answer.side_effect = ConnectionError("offline")
    recorder.complete_attempt.side_effect = ConnectionError("offline")
    session = _started(scheduler, questions, weights, recorder=recorder, session_id="s1")
    session.answer("q1", ["A"])
    scheduler.run_pending()
    assert session.next() is True
    summary = session.finalize()
    scheduler.run_pending()
    assert summary.correct == 1
    recorder.complete_attempt.assert_called_once_with("s1", 1, summary.score, summary.domain_breakdown())


async def test_countdown_on_asyncio_loop(questions, weights):
    loop = asyncio.get_running_loop()
    finished = asyncio.Event()
    session = QuizSession(loop, on_finalize=lambda summary: finished.set(), tick_interval=0.01)
    session.start(questions, weights, duration_limit=3)
    await asyncio.wait_for(finished.wait(), timeout=2)
    assert session.state is SessionState.TERMINAL
    assert session.summary.total == 3


def test_finalize_with_incomplete_summary_reaches_terminal(scheduler, questions, weights):
    session = _started(scheduler, questions, weights, scorer=lambda *a: ResultSummary(correct=0, total=3, score=None))
    summary = session.finalize()
    assert session.state is SessionState.TERMINAL
    assert summary.score == 100


def test_first_answer_elapsed_counts_from_clock_zero(scheduler, questions, weights):
    recorder = MagicMock()
    session = _started(scheduler, questions, weights, recorder=recorder, session_id="s1")
    assert session.started_at == 0.0
    scheduler.advance(12)
    session.answer("q1", ["A"])
    session.next()
    scheduler.advance(3)
    session.answer("q2", ["B", "C"])
    scheduler.run_pending()
    elapsed = [c.args[4] for c in recorder.record_answer.call_args_list]
    assert elapsed == [12, 3]


def test_elapsed_seconds_stops_at_finalize(scheduler, questions, weights):
    session = _started(scheduler, questions, weights)
    scheduler.advance(40)
    assert session.elapsed_seconds == 40
    session.finalize()
    scheduler.advance(100)
    assert session.elapsed_seconds == 40
