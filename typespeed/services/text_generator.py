"""Expected text generation from a word dictionary."""
from __future__ import annotations

import logging
import pathlib
import random
from typing import Iterable, Optional, Sequence

from typespeed.config import (
    DEFAULT_NUMBERS_RATIO,
    DEFAULT_SYMBOLS_RATIO,
    DEFAULT_UPPERCASE_RATIO,
    ConfigError,
    TestConfig,
    resolve_ratio,
)
from typespeed.domain.models import CharOrigin, ExpectedText

LOGGER = logging.getLogger(__name__)

DIGITS = "0123456789"
SYMBOLS = "!@#$%^&*()-_=+[]{};:'\",.<>/?"

# 300 WPM; nobody should run out of text before the clock does.
GENEROUS_CHARS_PER_SECOND = 25
MIN_TEXT_LENGTH = 100


class DictionaryError(ConfigError):
    """Raised when the word dictionary cannot be loaded."""


def builtin_dictionary_path() -> pathlib.Path:
    return pathlib.Path(__file__).resolve().parents[1] / "dict" / "words.txt"


def load_dictionary(path: Optional[str | pathlib.Path] = None) -> tuple[str, ...]:
    """Load words from a text file, one word per line.

    With no path the builtin dictionary is used.
    """
    path_obj = pathlib.Path(path) if path is not None else builtin_dictionary_path()
    if not path_obj.is_file():
        raise DictionaryError(f"Dictionary path does not exist: {path_obj}")

    try:
        content = path_obj.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DictionaryError(f"Unable to read dictionary {path_obj}: {exc}") from exc

    words = _split_words(content.splitlines())
    if not words:
        raise DictionaryError(f"No words found in dictionary {path_obj}")

    LOGGER.info("Loaded %s words from %s", len(words), path_obj)
    return words


def target_length(duration_s: int) -> int:
    return max(MIN_TEXT_LENGTH, duration_s * GENEROUS_CHARS_PER_SECOND)


class TextGenerator:
    def __init__(
        self,
        words: Sequence[str],
        config: TestConfig,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._words = _split_words(words)
        if not self._words:
            raise DictionaryError("Dictionary contains no words")
        self._config = config
        self._rng = rng or random.Random()

    def generate(self) -> ExpectedText:
        base = self._sample_base_text(target_length(self._config.duration))
        config = self._config

        numbers_ratio = 0.0
        if config.numbers:
            numbers_ratio = resolve_ratio(
                config.numbers_ratio, DEFAULT_NUMBERS_RATIO, name="numbers_ratio"
            )
        symbols_ratio = 0.0
        if config.symbols:
            symbols_ratio = resolve_ratio(
                config.symbols_ratio, DEFAULT_SYMBOLS_RATIO, name="symbols_ratio"
            )
        uppercase_ratio = 0.0
        if config.uppercase:
            uppercase_ratio = resolve_ratio(
                config.uppercase_ratio, DEFAULT_UPPERCASE_RATIO, name="uppercase_ratio"
            )

        expected = substitute_characters(
            base,
            numbers_ratio=numbers_ratio,
            symbols_ratio=symbols_ratio,
            uppercase_ratio=uppercase_ratio,
            rng=self._rng,
        )
        LOGGER.debug("Generated expected text of %s characters", len(expected))
        return expected

    def _sample_base_text(self, min_length: int) -> str:
        sampled: list[str] = []
        length = -1
        while length < min_length:
            word = self._rng.choice(self._words)
            sampled.append(word)
            length += len(word) + 1
        return " ".join(sampled)


def substitute_characters(
    base: str,
    *,
    numbers_ratio: float,
    symbols_ratio: float,
    uppercase_ratio: float,
    rng: random.Random,
) -> ExpectedText:
    """Apply the number, symbol and uppercase passes to ``base``.

    Separator positions are taken from ``base`` once, up front. Each other
    position rolls each enabled pass independently; a number hit wins over
    a symbol hit, which wins over an uppercase hit.
    """
    separators = [ch.isspace() for ch in base]

    chars: list[str] = []
    origins: list[CharOrigin] = []
    for index, ch in enumerate(base):
        if separators[index]:
            chars.append(ch)
            origins.append(CharOrigin.SEPARATOR)
            continue

        number_hit = numbers_ratio > 0 and rng.random() < numbers_ratio
        symbol_hit = symbols_ratio > 0 and rng.random() < symbols_ratio
        upper_hit = uppercase_ratio > 0 and rng.random() < uppercase_ratio

        if number_hit:
            chars.append(_replace_from(ch, DIGITS, rng))
            origins.append(CharOrigin.NUMBER)
        elif symbol_hit:
            chars.append(_replace_from(ch, SYMBOLS, rng))
            origins.append(CharOrigin.SYMBOL)
        elif upper_hit and _has_uppercase(ch):
            chars.append(ch.upper())
            origins.append(CharOrigin.UPPERCASE)
        else:
            chars.append(ch)
            origins.append(CharOrigin.WORD_LETTER)

    return ExpectedText(text="".join(chars), origins=tuple(origins))


def _replace_from(ch: str, alphabet: str, rng: random.Random) -> str:
    return rng.choice([candidate for candidate in alphabet if candidate != ch])


def _has_uppercase(ch: str) -> bool:
    upper = ch.upper()
    return ch.isalpha() and upper != ch and len(upper) == 1


def _split_words(lines: Iterable[str]) -> tuple[str, ...]:
    return tuple(word for line in lines for word in line.split())
