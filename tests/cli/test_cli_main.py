from __future__ import annotations

import pathlib
from typing import Optional

import pytest

from typespeed.cli import main as cli_main
from typespeed.domain.models import TestMetrics
from typespeed.services.session import Start, TestSession, TypeChar
from typespeed.storage.results import ResultsStore

pytestmark = pytest.mark.cli


@pytest.fixture(autouse=True)
def _no_user_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_main, "find_default_config", lambda: None)


def _base_args(tmp_path: pathlib.Path, results_path: pathlib.Path) -> list[str]:
    return ["--log-file", str(tmp_path / "typespeed.log"), "--results-path", str(results_path)]


def _type_everything(session: TestSession, **_: object) -> Optional[TestMetrics]:
    session.handle(Start())
    assert session.expected is not None
    for ch in session.expected.text:
        session.handle(TypeChar(ch))
    return session.metrics


def test_parser_accepts_boolean_switches() -> None:
    args = cli_main.build_parser().parse_args(
        ["--numbers", "--no-uppercase", "--symbols-ratio", "0.2", "-d", "15"]
    )
    assert args.numbers is True
    assert args.uppercase is False
    assert args.symbols is None
    assert args.symbols_ratio == 0.2
    assert args.duration == 15
    assert args.command is None


def test_finished_test_is_printed_and_saved(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    tmp_path: pathlib.Path,
    results_path: pathlib.Path,
    dictionary_path: pathlib.Path,
) -> None:
    monkeypatch.setattr(cli_main, "run_test", _type_everything)

    exit_code = cli_main.main(
        _base_args(tmp_path, results_path)
        + ["--duration", "5", "--dictionary-path", str(dictionary_path)]
    )

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "WPM:" in output
    assert "Accuracy after corrections: 100.00%" in output

    [record] = ResultsStore(results_path).load()
    assert record.duration == 5
    assert record.dictionary == str(dictionary_path)
    assert record.accuracy == 1.0


def test_unfinished_test_is_not_saved(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    tmp_path: pathlib.Path,
    results_path: pathlib.Path,
) -> None:
    monkeypatch.setattr(cli_main, "run_test", lambda session, **_: None)

    assert cli_main.main(_base_args(tmp_path, results_path)) == 0
    assert "Test not finished." in capsys.readouterr().out
    assert not results_path.exists()


def test_no_save_results_flag(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: pathlib.Path,
    results_path: pathlib.Path,
) -> None:
    monkeypatch.setattr(cli_main, "run_test", _type_everything)

    cli_main.main(_base_args(tmp_path, results_path) + ["-d", "1", "--no-save-results"])
    assert not results_path.exists()


def test_config_file_values_are_used(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: pathlib.Path,
    results_path: pathlib.Path,
) -> None:
    seen: list[TestSession] = []
    monkeypatch.setattr(cli_main, "run_test", lambda session, **_: seen.append(session))
    config_path = tmp_path / "typespeed-config.toml"
    config_path.write_text("duration = 12\nuppercase = true\n", encoding="utf-8")

    cli_main.main(_base_args(tmp_path, results_path) + ["--config", str(config_path), "--no-uppercase"])

    [session] = seen
    assert session.config.duration == 12
    assert session.config.uppercase is False


@pytest.mark.parametrize(
    "extra",
    [
        ["--duration", "0"],
        ["--config", "/does/not/exist.toml"],
        ["--dictionary-path", "/does/not/exist.txt"],
    ],
)
def test_fatal_config_errors_exit_before_ui(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: pathlib.Path,
    results_path: pathlib.Path,
    extra: list[str],
) -> None:
    def _fail(*args: object, **kwargs: object) -> None:
        raise AssertionError("UI must not start")

    monkeypatch.setattr(cli_main, "run_test", _fail)

    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(_base_args(tmp_path, results_path) + extra)
    assert excinfo.value.code == 2


def test_history_passes_stored_records(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: pathlib.Path,
    results_path: pathlib.Path,
) -> None:
    monkeypatch.setattr(cli_main, "run_test", _type_everything)
    cli_main.main(_base_args(tmp_path, results_path) + ["-d", "1"])
    cli_main.main(_base_args(tmp_path, results_path) + ["-d", "2"])

    shown: dict[str, object] = {}

    def _fake_history(records, *, warning=None) -> None:
        shown["records"] = records
        shown["warning"] = warning

    monkeypatch.setattr(cli_main, "run_history", _fake_history)

    assert cli_main.main(_base_args(tmp_path, results_path) + ["history"]) == 0
    assert [record.duration for record in shown["records"]] == [1, 2]
    assert shown["warning"] is None


def test_history_with_broken_file_shows_warning(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: pathlib.Path,
    results_path: pathlib.Path,
) -> None:
    results_path.parent.mkdir(parents=True)
    results_path.write_text("accuracy\n1\n", encoding="utf-8")
    shown: dict[str, object] = {}
    monkeypatch.setattr(
        cli_main,
        "run_history",
        lambda records, *, warning=None: shown.update(records=records, warning=warning),
    )

    assert cli_main.main(_base_args(tmp_path, results_path) + ["history"]) == 0
    assert shown["records"] == []
    assert "Missing required columns" in str(shown["warning"])


def test_history_with_non_finite_wpm_shows_warning(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: pathlib.Path,
    results_path: pathlib.Path,
) -> None:
    results_path.parent.mkdir(parents=True)
    results_path.write_text("timestamp,wpm,duration\n2026-10-16T10:00:00,nan,30\n", encoding="utf-8")
    shown: dict[str, object] = {}
    monkeypatch.setattr(
        cli_main,
        "run_history",
        lambda records, *, warning=None: shown.update(records=records, warning=warning),
    )

    assert cli_main.main(_base_args(tmp_path, results_path) + ["history"]) == 0
    assert shown["records"] == []
    assert "Invalid wpm value 'nan'" in str(shown["warning"])
