"""Domain models for the typing test."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class CharOrigin(enum.Enum):
    WORD_LETTER = "word_letter"
    NUMBER = "number"
    SYMBOL = "symbol"
    UPPERCASE = "uppercase"
    SEPARATOR = "separator"


class CharStatus(enum.Enum):
    UNTYPED = "untyped"
    CORRECT = "correct"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class ExpectedText:
    """Generated target text with the origin class of every character."""

    text: str
    origins: tuple[CharOrigin, ...]

    def __post_init__(self) -> None:
        if len(self.text) != len(self.origins):
            raise ValueError(
                f"origins length {len(self.origins)} does not match text length {len(self.text)}"
            )

    def __len__(self) -> int:
        return len(self.text)

    def __str__(self) -> str:
        return self.text

    def origin_at(self, index: int) -> CharOrigin:
        return self.origins[index]

    @classmethod
    def from_words(cls, text: str) -> "ExpectedText":
        """Tag plain text as word letters and separators, without substitutions."""
        origins = tuple(
            CharOrigin.SEPARATOR if ch.isspace() else CharOrigin.WORD_LETTER for ch in text
        )
        return cls(text=text, origins=origins)


@dataclass(frozen=True)
class TestMetrics:
    __test__ = False

    wpm: float
    accuracy: float
    elapsed_s: float
    typed_chars: int
    correct_chars: int
    incorrect_chars: int
    raw_typed_chars: int
    raw_correct_chars: int
    raw_incorrect_chars: int
    raw_accuracy: float


@dataclass(frozen=True)
class ResultRecord:
    timestamp: str
    wpm: float
    accuracy: float
    raw_accuracy: float
    duration: int
    elapsed_s: float
    correct_chars: int
    incorrect_chars: int
    typed_chars: int
    raw_correct_chars: int
    raw_incorrect_chars: int
    raw_typed_chars: int
    numbers: Optional[bool] = None
    numbers_ratio: Optional[float] = None
    symbols: Optional[bool] = None
    symbols_ratio: Optional[float] = None
    uppercase: Optional[bool] = None
    uppercase_ratio: Optional[float] = None
    dictionary: Optional[str] = None
