"""Typing test lifecycle: start, pause, resume, finish and scoring."""
from __future__ import annotations

import datetime as dt
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Union

from typespeed.config import TestConfig
from typespeed.domain.models import CharStatus, ExpectedText, ResultRecord, TestMetrics
from typespeed.services.input_matcher import InputMatcher
from typespeed.storage.results import PersistenceError

LOGGER = logging.getLogger(__name__)

CHARS_PER_WORD = 5
MIN_ELAPSED_S = 1e-3


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Running:
    resumed_at: float
    accumulated: float = 0.0

    def elapsed(self, now: float) -> float:
        return self.accumulated + max(0.0, now - self.resumed_at)


@dataclass(frozen=True)
class Paused:
    accumulated: float

    def elapsed(self, now: float) -> float:
        return self.accumulated


@dataclass(frozen=True)
class Finished:
    elapsed_s: float
    metrics: TestMetrics
    record: ResultRecord

    def elapsed(self, now: float) -> float:
        return self.elapsed_s


Phase = Union[Idle, Running, Paused, Finished]


def start(now: float) -> Running:
    return Running(resumed_at=now)


def pause(phase: Running, now: float) -> Paused:
    return Paused(accumulated=phase.elapsed(now))


def resume(phase: Paused, now: float) -> Running:
    return Running(resumed_at=now, accumulated=phase.accumulated)


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Resume:
    pass


@dataclass(frozen=True)
class TypeChar:
    char: str


@dataclass(frozen=True)
class DeleteChar:
    pass


@dataclass(frozen=True)
class DeleteWord:
    pass


Event = Union[Start, Pause, Resume, TypeChar, DeleteChar, DeleteWord]


class TextSource(Protocol):
    def generate(self) -> ExpectedText: ...


class ResultSink(Protocol):
    def append(self, record: ResultRecord) -> None: ...


def compute_metrics(
    *,
    typed_chars: int,
    correct_chars: int,
    elapsed_s: float,
    raw_correct_chars: int = 0,
    raw_incorrect_chars: int = 0,
) -> TestMetrics:
    """Score a finished test.

    WPM counts every typed character (five per word) over the active
    running time. Accuracy is the share of typed characters that are
    correct, and is 1.0 when nothing was typed.
    """
    elapsed = max(elapsed_s, MIN_ELAPSED_S)
    raw_typed = raw_correct_chars + raw_incorrect_chars
    return TestMetrics(
        wpm=(typed_chars / CHARS_PER_WORD) / (elapsed / 60),
        accuracy=correct_chars / typed_chars if typed_chars else 1.0,
        elapsed_s=elapsed_s,
        typed_chars=typed_chars,
        correct_chars=correct_chars,
        incorrect_chars=typed_chars - correct_chars,
        raw_typed_chars=raw_typed,
        raw_correct_chars=raw_correct_chars,
        raw_incorrect_chars=raw_incorrect_chars,
        raw_accuracy=raw_correct_chars / raw_typed if raw_typed else 1.0,
    )


def _local_timestamp() -> str:
    return dt.datetime.now().astimezone().isoformat(timespec="seconds")


class TestSession:
    """Drives one typing test at a time through its phases.

    Events that make no sense in the current phase are ignored, e.g.
    keystrokes while paused or a pause request before the test started.
    """

    __test__ = False

    def __init__(
        self,
        config: TestConfig,
        text_source: TextSource,
        *,
        results_store: Optional[ResultSink] = None,
        clock: Callable[[], float] = time.monotonic,
        timestamp_factory: Callable[[], str] = _local_timestamp,
    ) -> None:
        self._config = config
        self._text_source = text_source
        self._results_store = results_store
        self._clock = clock
        self._timestamp_factory = timestamp_factory

        self._phase: Phase = Idle()
        self._expected: Optional[ExpectedText] = None
        self._matcher: Optional[InputMatcher] = None
        self._raw_correct = 0
        self._raw_incorrect = 0
        self._warning: Optional[str] = None

    @property
    def config(self) -> TestConfig:
        return self._config

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def expected(self) -> Optional[ExpectedText]:
        return self._expected

    @property
    def matcher(self) -> Optional[InputMatcher]:
        return self._matcher

    @property
    def warning(self) -> Optional[str]:
        """Last non-fatal problem worth showing to the user, if any."""
        return self._warning

    @property
    def metrics(self) -> Optional[TestMetrics]:
        if isinstance(self._phase, Finished):
            return self._phase.metrics
        return None

    def elapsed(self) -> float:
        if isinstance(self._phase, Idle):
            return 0.0
        return self._phase.elapsed(self._clock())

    def remaining(self) -> float:
        return max(0.0, self._config.duration - self.elapsed())

    def handle(self, event: Event) -> None:
        phase = self._phase

        if isinstance(phase, (Idle, Finished)):
            if isinstance(event, Start):
                self._begin()
            return

        if isinstance(phase, Paused):
            if isinstance(event, Resume):
                self._phase = resume(phase, self._clock())
                LOGGER.info("Test resumed at %.2fs", phase.accumulated)
            return

        self.tick()
        if not isinstance(self._phase, Running):
            return

        if isinstance(event, Pause):
            self._phase = pause(self._phase, self._clock())
            LOGGER.info("Test paused at %.2fs", self._phase.accumulated)
        elif isinstance(event, TypeChar):
            self._type(event.char)
        elif isinstance(event, DeleteChar):
            self._require_matcher().delete_char()
        elif isinstance(event, DeleteWord):
            self._require_matcher().delete_word()

    def tick(self) -> None:
        """Finish the test once the running time has reached the duration."""
        phase = self._phase
        if not isinstance(phase, Running):
            return
        elapsed = phase.elapsed(self._clock())
        if elapsed >= self._config.duration:
            self._finish(elapsed)

    def _begin(self) -> None:
        self._expected = self._text_source.generate()
        self._matcher = InputMatcher(self._expected)
        self._raw_correct = 0
        self._raw_incorrect = 0
        self._warning = None
        self._phase = start(self._clock())
        LOGGER.info(
            "Test started (%ss, %s expected characters)",
            self._config.duration,
            len(self._expected),
        )

    def _type(self, char: str) -> None:
        matcher = self._require_matcher()
        status = matcher.type_char(char)
        if status is CharStatus.CORRECT:
            self._raw_correct += 1
        elif status is CharStatus.INCORRECT:
            self._raw_incorrect += 1

        if matcher.is_exhausted and isinstance(self._phase, Running):
            self._finish(self._phase.elapsed(self._clock()))

    def _finish(self, elapsed: float) -> None:
        matcher = self._require_matcher()
        metrics = compute_metrics(
            typed_chars=matcher.cursor,
            correct_chars=matcher.correct_count,
            elapsed_s=elapsed,
            raw_correct_chars=self._raw_correct,
            raw_incorrect_chars=self._raw_incorrect,
        )
        record = self._build_record(metrics)
        self._phase = Finished(elapsed_s=elapsed, metrics=metrics, record=record)
        LOGGER.info(
            "Test finished: %.2f WPM, %.1f%% accuracy, %s characters in %.2fs",
            metrics.wpm,
            metrics.accuracy * 100,
            metrics.typed_chars,
            elapsed,
        )

        if self._config.save_results and self._results_store is not None:
            try:
                self._results_store.append(record)
            except PersistenceError as exc:
                LOGGER.warning("Unable to save test results: %s", exc)
                self._warning = f"Results not saved: {exc}"

    def _build_record(self, metrics: TestMetrics) -> ResultRecord:
        config = self._config
        return ResultRecord(
            timestamp=self._timestamp_factory(),
            wpm=metrics.wpm,
            accuracy=metrics.accuracy,
            raw_accuracy=metrics.raw_accuracy,
            duration=config.duration,
            elapsed_s=metrics.elapsed_s,
            correct_chars=metrics.correct_chars,
            incorrect_chars=metrics.incorrect_chars,
            typed_chars=metrics.typed_chars,
            raw_correct_chars=metrics.raw_correct_chars,
            raw_incorrect_chars=metrics.raw_incorrect_chars,
            raw_typed_chars=metrics.raw_typed_chars,
            numbers=config.numbers,
            numbers_ratio=config.numbers_ratio,
            symbols=config.symbols,
            symbols_ratio=config.symbols_ratio,
            uppercase=config.uppercase,
            uppercase_ratio=config.uppercase_ratio,
            dictionary=str(config.dictionary_path) if config.dictionary_path else "builtin",
        )

    def _require_matcher(self) -> InputMatcher:
        if self._matcher is None:
            raise RuntimeError("No test in progress")
        return self._matcher
