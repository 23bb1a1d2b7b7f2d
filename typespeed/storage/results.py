"""CSV storage for finished test results."""
from __future__ import annotations

import csv
import dataclasses
import logging
import math
import pathlib
from typing import Any, Optional

from typespeed.config import data_dir
from typespeed.domain.models import ResultRecord

LOGGER = logging.getLogger(__name__)

RESULTS_FILE_NAME = "typespeed-results.csv"
FIELDNAMES = [field.name for field in dataclasses.fields(ResultRecord)]

_INT_FIELDS = {
    "duration",
    "correct_chars",
    "incorrect_chars",
    "typed_chars",
    "raw_correct_chars",
    "raw_incorrect_chars",
    "raw_typed_chars",
}
_FLOAT_FIELDS = {"wpm", "accuracy", "raw_accuracy", "elapsed_s"}
_OPTIONAL_FLOAT_FIELDS = {"numbers_ratio", "symbols_ratio", "uppercase_ratio"}
_OPTIONAL_BOOL_FIELDS = {"numbers", "symbols", "uppercase"}


class PersistenceError(RuntimeError):
    """Raised when results cannot be written or read."""


def default_results_path() -> pathlib.Path:
    return data_dir() / RESULTS_FILE_NAME


class ResultsStore:
    """Append-only CSV file of result records, one per line."""

    def __init__(self, path: Optional[str | pathlib.Path] = None) -> None:
        self._path = pathlib.Path(path) if path is not None else default_results_path()

    @property
    def path(self) -> pathlib.Path:
        return self._path

    def append(self, record: ResultRecord) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            needs_header = not self._path.exists() or self._path.stat().st_size == 0
            with self._path.open("a", encoding="utf-8", newline="") as handle:
                writer = csv.DictWriter(handle, fieldnames=FIELDNAMES)
                if needs_header:
                    writer.writeheader()
                writer.writerow(_to_row(record))
        except (OSError, csv.Error) as exc:
            raise PersistenceError(f"Unable to write results to {self._path}: {exc}") from exc

        LOGGER.info("Saved result (%.2f WPM) to %s", record.wpm, self._path)

    def load(self) -> list[ResultRecord]:
        """Return all stored records in insertion order."""
        if not self._path.exists():
            return []

        try:
            with self._path.open("r", encoding="utf-8", newline="") as handle:
                reader = csv.DictReader(handle)
                if reader.fieldnames is None:
                    return []

                missing = {"timestamp", "wpm"}.difference(
                    name.strip() for name in reader.fieldnames
                )
                if missing:
                    raise PersistenceError(
                        f"Missing required columns {sorted(missing)} in {self._path}"
                    )

                records = [
                    _from_row(row, line=reader.line_num) for row in reader
                ]
        except (OSError, csv.Error, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Unable to read results from {self._path}: {exc}") from exc

        LOGGER.debug("Loaded %s results from %s", len(records), self._path)
        return records


def _to_row(record: ResultRecord) -> dict[str, Any]:
    row = dataclasses.asdict(record)
    for key, value in row.items():
        if value is None:
            row[key] = ""
        elif isinstance(value, bool):
            row[key] = "true" if value else "false"
        elif isinstance(value, float):
            row[key] = f"{value:.4f}"
    return row


def _from_row(row: dict[str, Optional[str]], *, line: int) -> ResultRecord:
    values: dict[str, Any] = {}
    for name in FIELDNAMES:
        raw = _empty_to_none(row.get(name))
        if name == "timestamp":
            if raw is None:
                raise PersistenceError(f"Empty timestamp value on line {line}")
            values[name] = raw
        elif name in _INT_FIELDS:
            values[name] = _to_int(raw, name, line)
        elif name in _FLOAT_FIELDS:
            values[name] = _to_float(raw, name, line, default=0.0)
        elif name in _OPTIONAL_FLOAT_FIELDS:
            values[name] = _to_float(raw, name, line, default=None)
        elif name in _OPTIONAL_BOOL_FIELDS:
            values[name] = _to_bool(raw, name, line)
        else:
            values[name] = raw
    return ResultRecord(**values)


def _empty_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _to_int(value: Optional[str], field: str, line: int) -> int:
    if value is None:
        return 0
    try:
        return int(float(value))
    except (ValueError, OverflowError) as exc:
        raise PersistenceError(f"Invalid {field} value '{value}' on line {line}") from exc


def _to_float(
    value: Optional[str],
    field: str,
    line: int,
    *,
    default: Optional[float],
) -> Optional[float]:
    if value is None:
        return default
    try:
        number = float(value)
    except ValueError as exc:
        raise PersistenceError(f"Invalid {field} value '{value}' on line {line}") from exc
    if not math.isfinite(number):
        raise PersistenceError(f"Invalid {field} value '{value}' on line {line}")
    return number


def _to_bool(value: Optional[str], field: str, line: int) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise PersistenceError(f"Invalid {field} value '{value}' on line {line}")
