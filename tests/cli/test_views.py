from __future__ import annotations

import curses

import pytest

from typespeed.cli import views
from typespeed.cli.tui import (
    ALT_BACKSPACE,
    CTRL_H,
    CTRL_W,
    DEL,
    ESC,
    QUIT,
    TOGGLE_HELP,
    TestApp,
    key_to_event,
    load_history,
)
from typespeed.config import TestConfig
from typespeed.domain.models import ExpectedText, ResultRecord
from typespeed.services.session import (
    DeleteChar,
    DeleteWord,
    Finished,
    Idle,
    Pause,
    Paused,
    Resume,
    Running,
    Start,
    TestSession,
    TypeChar,
    compute_metrics,
)
from typespeed.storage.results import ResultsStore

pytestmark = pytest.mark.cli


def _record(timestamp: str, wpm: float) -> ResultRecord:
    return ResultRecord(
        timestamp=timestamp,
        wpm=wpm,
        accuracy=1.0,
        raw_accuracy=1.0,
        duration=30,
        elapsed_s=30.0,
        correct_chars=0,
        incorrect_chars=0,
        typed_chars=0,
        raw_correct_chars=0,
        raw_incorrect_chars=0,
        raw_typed_chars=0,
    )


def _finished() -> Finished:
    metrics = compute_metrics(typed_chars=10, correct_chars=9, elapsed_s=30.0)
    return Finished(elapsed_s=30.0, metrics=metrics, record=_record("2026-10-16T10:00:00", 4.0))


RUNNING = Running(resumed_at=0.0)


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("a", TypeChar("a")),
        ("q", TypeChar("q")),
        (" ", TypeChar(" ")),
        (ESC, Pause()),
        (DEL, DeleteChar()),
        (curses.KEY_BACKSPACE, DeleteChar()),
        (CTRL_W, DeleteWord()),
        (CTRL_H, DeleteWord()),
        (ALT_BACKSPACE, DeleteWord()),
        ("\n", None),
        (curses.KEY_RESIZE, None),
    ],
)
def test_keys_while_running(key, expected) -> None:
    assert key_to_event(key, RUNNING) == expected


def test_keys_outside_running() -> None:
    assert key_to_event("s", Idle()) == Start()
    assert key_to_event("s", Paused(accumulated=3.0)) == Resume()
    assert key_to_event("s", _finished()) == Start()
    assert key_to_event("q", Paused(accumulated=3.0)) == QUIT
    assert key_to_event("?", Idle()) == TOGGLE_HELP
    assert key_to_event(ESC, _finished()) == QUIT
    assert key_to_event(ESC, Idle()) is None
    assert key_to_event("a", Idle()) is None


def test_time_left_message() -> None:
    assert views.time_left_message(1) == "1 second left"
    assert views.time_left_message(30) == "30 seconds left"


def test_help_message_follows_phase() -> None:
    assert "start the test" in views.help_message(Idle())
    assert "unpause" in views.help_message(Paused(accumulated=1.0))
    assert "Esc" in views.help_message(RUNNING)
    assert "new test" in views.help_message(_finished())


def test_wrap_positions() -> None:
    assert views.wrap_positions(10, 4) == [(0, 4), (4, 8), (8, 10)]
    assert views.wrap_positions(0, 4) == []
    assert views.wrap_positions(10, 0) == []


def test_visible_rows_keep_cursor_on_screen() -> None:
    assert views.visible_rows(100, 0, 10, 3) == [(0, 10), (10, 20), (20, 30)]
    assert views.visible_rows(100, 55, 10, 3) == [(40, 50), (50, 60), (60, 70)]
    assert views.visible_rows(100, 99, 10, 3) == [(70, 80), (80, 90), (90, 100)]
    assert views.cursor_cell(55, 10) == (5, 5)


def test_stats_lines() -> None:
    lines = views.stats_lines(_finished().metrics)
    assert lines[0] == "WPM: 4.00"
    assert "Accuracy after corrections: 90.00%" in lines
    assert "Characters typed after corrections: 10" in lines


def test_history_chart_empty() -> None:
    assert views.history_chart([], 80) == ["No previous results."]


def test_history_chart_shows_latest_results_that_fit() -> None:
    records = [
        _record("2026-10-14T08:05:00", 10.0),
        _record("2026-10-15T09:30:00", 20.0),
        _record("2026-10-16T21:45:00", 40.0),
    ]
    lines = views.history_chart(records, width=11, height=4)

    assert len(lines) == 4 + 4
    assert lines[0] == " " * 6 + views.BAR_CHAR * 5
    assert lines[3] == views.BAR_CHAR * 5 + " " + views.BAR_CHAR * 5
    assert lines[4] == " 20    40"
    assert lines[5] == "09:30 21:45"
    assert lines[6] == "10/15 10/16"
    assert lines[7] == "2026  2026"


def test_load_history_adds_unsaved_result(results_path) -> None:
    class _Source:
        def generate(self) -> ExpectedText:
            return ExpectedText.from_words("ab")

    store = ResultsStore(results_path)
    store.append(_record("2026-10-15T09:30:00", 20.0))
    session = TestSession(TestConfig(duration=5, save_results=False), _Source())
    session.handle(Start())
    session.handle(TypeChar("a"))
    session.handle(TypeChar("b"))

    records = load_history(store, session)
    assert len(records) == 2
    assert isinstance(session.phase, Finished)
    assert records[-1] is session.phase.record


def _press(app: TestApp, keys: str) -> bool:
    return all(app.handle_key(key) for key in keys)


def test_quitting_reports_only_the_test_on_screen(config, clock) -> None:
    class _Source:
        def generate(self) -> ExpectedText:
            return ExpectedText.from_words("ab")

    session = TestSession(config, _Source(), clock=clock)
    app = TestApp(None, session)

    assert _press(app, "sab")
    assert session.metrics is not None

    assert _press(app, "sa" + ESC)
    assert isinstance(session.phase, Paused)
    assert app.handle_key("q") is False
    assert session.metrics is None


def test_quitting_after_finish_keeps_metrics(config, clock, text_source) -> None:
    session = TestSession(config, text_source, clock=clock)
    app = TestApp(None, session)

    assert _press(app, "s" + "the cat sat")
    assert isinstance(session.phase, Finished)
    assert app.handle_key("?") is True
    assert app.handle_key("q") is False
    assert session.metrics == session.phase.metrics


def test_help_lines_cover_quit_and_pause() -> None:
    assert " 'q' - Quit" in views.HELP_LINES
    assert " <Esc> - Pause the test" in views.HELP_LINES
