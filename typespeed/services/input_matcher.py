"""Comparison of typed characters against the expected text."""
from __future__ import annotations

from typing import Optional

from typespeed.domain.models import CharStatus, ExpectedText


class InputMatcher:
    """Tracks what has been typed so far against a fixed expected text.

    The cursor always sits in ``[0, len(expected)]``. Positions before the
    cursor are correct or incorrect; the rest are untyped. Operations that
    would move the cursor out of range are no-ops, since holding backspace
    at the start or typing past the end is normal user behaviour.
    """

    def __init__(self, expected: str | ExpectedText) -> None:
        self._expected = str(expected)
        self._typed: list[str] = []

    def __len__(self) -> int:
        return len(self._expected)

    @property
    def expected(self) -> str:
        return self._expected

    @property
    def cursor(self) -> int:
        return len(self._typed)

    @property
    def typed_text(self) -> str:
        return "".join(self._typed)

    @property
    def is_exhausted(self) -> bool:
        return self.cursor >= len(self._expected)

    @property
    def correct_count(self) -> int:
        return sum(
            1 for index, typed in enumerate(self._typed) if typed == self._expected[index]
        )

    @property
    def incorrect_count(self) -> int:
        return self.cursor - self.correct_count

    def type_char(self, char: str) -> Optional[CharStatus]:
        """Record ``char`` at the cursor and return its status.

        Returns ``None`` when nothing was recorded.
        """
        if len(char) != 1 or self.is_exhausted:
            return None
        expected_char = self._expected[self.cursor]
        self._typed.append(char)
        return CharStatus.CORRECT if char == expected_char else CharStatus.INCORRECT

    def delete_char(self) -> None:
        if self._typed:
            self._typed.pop()

    def delete_word(self) -> None:
        """Move the cursor back to the start of the word before it.

        Whitespace directly before the cursor is skipped first, so
        "the cat" and "the cat " both go back to "the ".
        """
        position = self.cursor
        while position > 0 and self._typed[position - 1].isspace():
            position -= 1
        while position > 0 and not self._typed[position - 1].isspace():
            position -= 1
        del self._typed[position:]

    def status_at(self, index: int) -> CharStatus:
        if index < 0 or index >= self.cursor:
            return CharStatus.UNTYPED
        if self._typed[index] == self._expected[index]:
            return CharStatus.CORRECT
        return CharStatus.INCORRECT

    def statuses(self) -> tuple[CharStatus, ...]:
        return tuple(self.status_at(index) for index in range(len(self._expected)))
