"""curses front end: reads keys, drives the session and draws each tick."""
from __future__ import annotations

import curses
import locale
import logging
import math
from typing import Optional, Sequence, Union

from typespeed.cli import views
from typespeed.config import ColorScheme
from typespeed.domain.models import CharStatus, ResultRecord, TestMetrics
from typespeed.services.session import (
    DeleteChar,
    DeleteWord,
    Event,
    Finished,
    Idle,
    Pause,
    Paused,
    Phase,
    Resume,
    Running,
    Start,
    TestSession,
    TypeChar,
)
from typespeed.storage.results import PersistenceError, ResultsStore

LOGGER = logging.getLogger(__name__)

TICK_MS = 100
ESC_DELAY_MS = 25

ESC = "\x1b"
DEL = "\x7f"
CTRL_H = "\x08"
CTRL_W = "\x17"
# Alt+Backspace arrives as ESC followed by DEL; the reader folds it into one key.
ALT_BACKSPACE = "alt-backspace"

QUIT = "quit"
TOGGLE_HELP = "toggle-help"

Key = Union[str, int]
Action = Union[Event, str]

_PAIR_CORRECT = 1
_PAIR_INCORRECT = 2
_PAIR_INFO = 3
_PAIR_PENDING = 4

_CURSES_COLORS = {
    "default": -1,
    "black": curses.COLOR_BLACK,
    "red": curses.COLOR_RED,
    "green": curses.COLOR_GREEN,
    "yellow": curses.COLOR_YELLOW,
    "blue": curses.COLOR_BLUE,
    "magenta": curses.COLOR_MAGENTA,
    "cyan": curses.COLOR_CYAN,
    "white": curses.COLOR_WHITE,
}


def key_to_event(key: Key, phase: Phase) -> Optional[Action]:
    """Translate a key press into a session event or a UI action."""
    if isinstance(phase, Running):
        if key == ESC:
            return Pause()
        if key in (curses.KEY_BACKSPACE, DEL):
            return DeleteChar()
        if key in (CTRL_H, CTRL_W, ALT_BACKSPACE):
            return DeleteWord()
        if isinstance(key, str) and len(key) == 1 and key.isprintable():
            return TypeChar(key)
        return None

    if key == "q":
        return QUIT
    if key == "?":
        return TOGGLE_HELP
    if key == "s":
        return Resume() if isinstance(phase, Paused) else Start()
    if key == ESC and isinstance(phase, Finished):
        return QUIT
    return None


class TestApp:
    """Control loop for the typing test screen."""

    __test__ = False

    def __init__(
        self,
        stdscr: "curses.window",
        session: TestSession,
        *,
        results_store: Optional[ResultsStore] = None,
        colors: ColorScheme = ColorScheme(),
    ) -> None:
        self._scr = stdscr
        self._session = session
        self._results_store = results_store
        self._colors = colors
        self._show_help = False
        self._history: list[ResultRecord] = []
        self._history_for: Optional[ResultRecord] = None

    def run(self) -> Optional[TestMetrics]:
        """Loop until the user quits.

        Returns the metrics of the test on screen when quitting, or None if that
        test was not finished.
        """
        _init_screen(self._scr, self._colors)
        while True:
            self._render()
            if not self.handle_key(_read_key(self._scr)):
                break
        return self._session.metrics

    def handle_key(self, key: Optional[Key]) -> bool:
        """Apply one key press and advance the clock; False means quit."""
        if key is not None:
            action = key_to_event(key, self._session.phase)
            if action == QUIT:
                return False
            if action == TOGGLE_HELP:
                self._show_help = not self._show_help
            elif action is not None and not isinstance(action, str):
                self._show_help = False
                self._session.handle(action)
        self._session.tick()
        self._refresh_history()
        return True

    def _refresh_history(self) -> None:
        phase = self._session.phase
        if not isinstance(phase, Finished) or phase.record is self._history_for:
            return
        self._history_for = phase.record
        self._history = load_history(self._results_store, self._session)

    def _render(self) -> None:
        scr = self._scr
        scr.erase()
        height, width = scr.getmaxyx()
        phase = self._session.phase

        if isinstance(phase, Finished):
            self._render_results(phase, width)
        else:
            self._render_test(phase, width, height)
        if self._show_help:
            self._render_help(width, height)
        scr.refresh()

    def _render_test(self, phase: Phase, width: int, height: int) -> None:
        session = self._session
        info = curses.color_pair(_PAIR_INFO)
        seconds_left = math.ceil(session.remaining())
        _addstr(self._scr, 0, 0, views.time_left_message(seconds_left), info)
        message = views.help_message(phase)
        _addstr(self._scr, 0, max(0, width - len(message) - 1), message, info)
        if session.warning:
            _addstr(self._scr, 1, 0, session.warning[: width - 1], info)

        matcher = session.matcher
        if matcher is None or isinstance(phase, Idle):
            _safe_curs_set(0)
            return

        top = 2
        rows = views.visible_rows(len(matcher), matcher.cursor, width, height - top)
        cursor_row, cursor_col = views.cursor_cell(matcher.cursor, width)
        expected = matcher.expected
        for offset, (start, end) in enumerate(rows):
            row_index = start // width
            for index in range(start, end):
                status = matcher.status_at(index)
                if status is CharStatus.CORRECT:
                    attr = curses.color_pair(_PAIR_CORRECT)
                elif status is CharStatus.INCORRECT:
                    attr = curses.color_pair(_PAIR_INCORRECT)
                elif row_index > cursor_row:
                    attr = curses.color_pair(_PAIR_PENDING) | curses.A_DIM
                else:
                    attr = curses.color_pair(_PAIR_PENDING)
                _addstr(self._scr, top + offset, index - start, expected[index], attr)

            if row_index == cursor_row and isinstance(phase, Running):
                _safe_curs_set(1)
                _move(self._scr, top + offset, cursor_col)

        if not isinstance(phase, Running):
            _safe_curs_set(0)

    def _render_results(self, phase: Finished, width: int) -> None:
        _safe_curs_set(0)
        info = curses.color_pair(_PAIR_INFO)
        _addstr(self._scr, 0, 0, "Test completed")
        message = views.help_message(phase)
        _addstr(self._scr, 0, max(0, width - len(message) - 1), message, info)

        row = 2
        for line in views.stats_lines(phase.metrics):
            _addstr(self._scr, row, 0, line)
            row += 1
        if self._session.warning:
            row += 1
            _addstr(self._scr, row, 0, self._session.warning[: width - 1], info)
        row += 2
        _addstr(self._scr, row, 0, "Previous results:")
        for line in views.history_chart(self._history, width - 1):
            row += 1
            _addstr(self._scr, row, 0, line)

    def _render_help(self, width: int, height: int) -> None:
        box_width = max(len(line) for line in views.HELP_LINES) + 2
        box_height = len(views.HELP_LINES) + 2
        top = max(0, (height - box_height) // 2)
        left = max(0, (width - box_width) // 2)
        try:
            window = self._scr.derwin(
                min(box_height, height - top), min(box_width, width - left), top, left
            )
        except curses.error:
            LOGGER.debug("Terminal too small for the help window")
            return
        window.erase()
        window.box()
        for offset, line in enumerate(views.HELP_LINES, start=1):
            _addstr(window, offset, 1, line)


def load_history(
    results_store: Optional[ResultsStore], session: TestSession
) -> list[ResultRecord]:
    """Stored results plus the current one when it was not written."""
    phase = session.phase
    records: list[ResultRecord] = []
    if results_store is not None:
        try:
            records = results_store.load()
        except PersistenceError as exc:
            LOGGER.warning("Unable to read previous results: %s", exc)

    saved = (
        results_store is not None
        and session.config.save_results
        and session.warning is None
    )
    if isinstance(phase, Finished) and not saved:
        records.append(phase.record)
    return records


def run_test(
    session: TestSession,
    *,
    results_store: Optional[ResultsStore] = None,
    colors: ColorScheme = ColorScheme(),
) -> Optional[TestMetrics]:
    return curses.wrapper(
        lambda stdscr: TestApp(
            stdscr, session, results_store=results_store, colors=colors
        ).run()
    )


def run_history(records: Sequence[ResultRecord], *, warning: Optional[str] = None) -> None:
    curses.wrapper(lambda stdscr: _history_loop(stdscr, records, warning))


def _history_loop(
    stdscr: "curses.window", records: Sequence[ResultRecord], warning: Optional[str]
) -> None:
    _init_screen(stdscr, ColorScheme())
    _safe_curs_set(0)
    info = curses.color_pair(_PAIR_INFO)
    while True:
        stdscr.erase()
        _, width = stdscr.getmaxyx()
        message = "Press <Esc> to quit"
        _addstr(stdscr, 0, max(0, width - len(message) - 1), message, info)
        row = 1
        if warning:
            _addstr(stdscr, row, 0, warning[: width - 1], info)
            row += 1
        _addstr(stdscr, row + 1, 0, "Previous results:")
        for offset, line in enumerate(views.history_chart(records, width - 1), start=row + 2):
            _addstr(stdscr, offset, 0, line)
        stdscr.refresh()

        if _read_key(stdscr) in (ESC, "q"):
            return


def _init_screen(stdscr: "curses.window", colors: ColorScheme) -> None:
    locale.setlocale(locale.LC_ALL, "")
    curses.set_escdelay(ESC_DELAY_MS)
    stdscr.keypad(True)
    stdscr.timeout(TICK_MS)
    if curses.has_colors():
        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(
            _PAIR_CORRECT,
            _CURSES_COLORS[colors.correct_match_fg],
            _CURSES_COLORS[colors.correct_match_bg],
        )
        curses.init_pair(
            _PAIR_INCORRECT,
            _CURSES_COLORS[colors.incorrect_match_fg],
            _CURSES_COLORS[colors.incorrect_match_bg],
        )
        curses.init_pair(_PAIR_INFO, curses.COLOR_YELLOW, -1)
        curses.init_pair(_PAIR_PENDING, -1, -1)


def _read_key(stdscr: "curses.window") -> Optional[Key]:
    """Wait up to one tick for a key; ``None`` when the tick passes quietly."""
    try:
        key = stdscr.get_wch()
    except curses.error:
        return None
    if key != ESC:
        return key

    stdscr.timeout(0)
    try:
        follow = stdscr.get_wch()
    except curses.error:
        follow = None
    finally:
        stdscr.timeout(TICK_MS)
    if follow in (DEL, curses.KEY_BACKSPACE):
        return ALT_BACKSPACE
    if follow is not None:
        curses.unget_wch(follow)
    return ESC


def _addstr(window: "curses.window", y: int, x: int, text: str, attr: int = 0) -> None:
    height, width = window.getmaxyx()
    if y < 0 or y >= height or x >= width:
        return
    try:
        window.addstr(y, x, text[: width - x], attr)
    except curses.error:
        # curses raises after writing the bottom-right cell; the text is drawn
        pass


def _move(window: "curses.window", y: int, x: int) -> None:
    height, width = window.getmaxyx()
    if 0 <= y < height and 0 <= x < width:
        window.move(y, x)


def _safe_curs_set(visibility: int) -> None:
    try:
        curses.curs_set(visibility)
    except curses.error:
        LOGGER.debug("Terminal does not support cursor visibility %s", visibility)
