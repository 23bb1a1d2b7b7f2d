from __future__ import annotations

import datetime as dt
import os
import pathlib

import pytest

from typespeed.config import TestConfig
from typespeed.domain.models import ExpectedText


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FixedTextSource:
    def __init__(self, *texts: str) -> None:
        self._texts = list(texts)
        self.calls = 0

    def generate(self) -> ExpectedText:
        text = self._texts[min(self.calls, len(self._texts) - 1)]
        self.calls += 1
        return ExpectedText.from_words(text)


@pytest.fixture()
def repo_root() -> pathlib.Path:
    return pathlib.Path(__file__).resolve().parents[1]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def text_source() -> FixedTextSource:
    return FixedTextSource("the cat sat")


@pytest.fixture()
def config() -> TestConfig:
    return TestConfig(duration=60, save_results=False)


@pytest.fixture()
def dictionary_path(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "words.txt"
    path.write_text("alpha\nbravo\n\ncharlie delta\n  echo  \n", encoding="utf-8")
    return path


@pytest.fixture()
def results_path(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "results" / "typespeed-results.csv"


def pytest_configure(config: pytest.Config) -> None:
    repo = pathlib.Path(__file__).resolve().parents[1]
    results_dir = repo / "test-results"
    results_dir.mkdir(parents=True, exist_ok=True)

    tag = os.environ.get("PYTEST_REPORT_TAG")
    if tag:
        safe_tag = "".join(ch for ch in tag if ch.isalnum() or ch in ("-", "_"))
        timestamp = safe_tag or dt.datetime.now().strftime("%Y%m%d-%H%M%S")
    else:
        timestamp = dt.datetime.now().strftime("%Y%m%d-%H%M%S")

    config.option.xmlpath = str(results_dir / f"pytest-{timestamp}.xml")
    config.option.htmlpath = str(results_dir / f"pytest-{timestamp}.html")
    config.option.self_contained_html = True
