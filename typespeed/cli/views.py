"""Terminal-independent layout helpers for the curses screens."""
from __future__ import annotations

import datetime as dt
from typing import Optional, Sequence

from typespeed.domain.models import ResultRecord, TestMetrics
from typespeed.services.session import Idle, Paused, Phase, Running

BAR_WIDTH = 5
BAR_GAP = 1
BAR_CHAR = "█"

HELP_LINES = (
    "",
    " Navigation:",
    " 's' - Start/resume the test",
    " <Esc> - Pause the test",
    " <Backspace> - Delete a character",
    " Ctrl+W / Ctrl+Backspace - Delete a word",
    " 'q' - Quit",
    " '?' - Close this window",
    "",
    " Configuration:",
    " --duration <seconds> - Set test duration",
    " --numbers - Include numbers in the test",
    " --symbols - Include symbols in the test",
    " --uppercase - Include uppercase letters",
    "",
    " Run 'typespeed --help' in your terminal to get more information ",
    "",
)


def time_left_message(seconds: int) -> str:
    label = "second" if seconds == 1 else "seconds"
    return f"{seconds} {label} left"


def help_message(phase: Phase) -> str:
    if isinstance(phase, Idle):
        return "press 's' to start the test, press 'q' to quit, '?' for help"
    if isinstance(phase, Paused):
        return "press 's' to unpause the test, press 'q' to quit, '?' for help"
    if isinstance(phase, Running):
        return "press 'Esc' to pause the test"
    return "press 's' to start a new test, press 'q' to quit"


def wrap_positions(text_length: int, width: int) -> list[tuple[int, int]]:
    """Split ``[0, text_length)`` into ``[start, end)`` rows of ``width`` cells."""
    if width <= 0:
        return []
    return [
        (start, min(start + width, text_length)) for start in range(0, text_length, width)
    ]


def cursor_cell(cursor: int, width: int) -> tuple[int, int]:
    return divmod(cursor, width)


def visible_rows(
    text_length: int, cursor: int, width: int, height: int
) -> list[tuple[int, int]]:
    """Rows to draw so the cursor row stays on screen, one row of context above."""
    rows = wrap_positions(text_length, width)
    if height <= 0 or not rows:
        return []
    cursor_row, _ = cursor_cell(cursor, width)
    first = max(0, min(cursor_row - 1, len(rows) - height))
    return rows[first : first + height]


def stats_lines(metrics: TestMetrics) -> list[str]:
    return [
        f"WPM: {metrics.wpm:.2f}",
        f"Raw accuracy: {metrics.raw_accuracy * 100:.2f}%",
        f"Raw valid characters: {metrics.raw_correct_chars}",
        f"Raw mistakes: {metrics.raw_incorrect_chars}",
        f"Raw characters typed: {metrics.raw_typed_chars}",
        f"Accuracy after corrections: {metrics.accuracy * 100:.2f}%",
        f"Valid characters after corrections: {metrics.correct_chars}",
        f"Mistakes after corrections: {metrics.incorrect_chars}",
        f"Characters typed after corrections: {metrics.typed_chars}",
        f"Time: {metrics.elapsed_s:.1f}s",
    ]


def history_chart(
    records: Sequence[ResultRecord], width: int, height: int = 10
) -> list[str]:
    """Render WPM bars for the most recent results that fit in ``width``.

    Below the bars come the WPM values, then the time, month/day and
    year of each result.
    """
    if not records:
        return ["No previous results."]

    bars_to_show = max(1, (width + BAR_GAP) // (BAR_WIDTH + BAR_GAP))
    shown = list(records[-bars_to_show:])
    peak = max(record.wpm for record in shown)
    gap = " " * BAR_GAP

    lines: list[str] = []
    for level in range(height, 0, -1):
        cells = []
        for record in shown:
            filled = peak > 0 and round(record.wpm / peak * height) >= level
            cells.append((BAR_CHAR if filled else " ") * BAR_WIDTH)
        lines.append(gap.join(cells).rstrip())

    lines.append(gap.join(f"{int(record.wpm):^{BAR_WIDTH}}" for record in shown).rstrip())
    stamps = [_parse_timestamp(record.timestamp) for record in shown]
    for fmt in ("%H:%M", "%m/%d", "%Y"):
        lines.append(gap.join(_format_stamp(stamp, fmt) for stamp in stamps).rstrip())
    return lines


def _parse_timestamp(value: str) -> Optional[dt.datetime]:
    try:
        return dt.datetime.fromisoformat(value)
    except ValueError:
        return None


def _format_stamp(stamp: Optional[dt.datetime], fmt: str) -> str:
    if stamp is None:
        return " " * BAR_WIDTH
    return f"{stamp.strftime(fmt):<{BAR_WIDTH}}"
