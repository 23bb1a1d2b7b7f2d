"""CLI entrypoint for the typing test."""
from __future__ import annotations

import argparse
import logging
import pathlib
from typing import Any, Optional

from typespeed.cli import views
from typespeed.cli.tui import run_history, run_test
from typespeed.config import (
    ConfigError,
    TestConfig,
    build_config,
    data_dir,
    find_default_config,
    load_config,
)
from typespeed.logging_setup import configure_logging
from typespeed.services.session import TestSession
from typespeed.services.text_generator import TextGenerator, load_dictionary
from typespeed.storage.results import PersistenceError, ResultsStore

LOGGER = logging.getLogger(__name__)

_OVERRIDE_KEYS = (
    "duration",
    "numbers",
    "numbers_ratio",
    "symbols",
    "symbols_ratio",
    "uppercase",
    "uppercase_ratio",
    "dictionary_path",
    "save_results",
    "results_path",
)


def _default_log_file() -> pathlib.Path:
    return data_dir() / "typespeed.log"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="typespeed",
        description="typespeed - a very minimalistic cli typing test",
    )
    parser.add_argument(
        "--config",
        help="Path to TOML/JSON config (default: ~/.config/typespeed/typespeed-config.toml).",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit logs in JSON format."
    )
    parser.add_argument(
        "--log-file",
        help=f"Log file path (default: {_default_log_file()}).",
    )

    parser.add_argument("-d", "--duration", type=int, help="Duration of the test in seconds.")
    parser.add_argument(
        "--numbers",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include numbers in the test.",
    )
    parser.add_argument("--numbers-ratio", type=float, help="Share of characters turned into digits.")
    parser.add_argument(
        "--symbols",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include symbols in the test.",
    )
    parser.add_argument("--symbols-ratio", type=float, help="Share of characters turned into symbols.")
    parser.add_argument(
        "--uppercase",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include uppercase letters in the test.",
    )
    parser.add_argument(
        "--uppercase-ratio", type=float, help="Share of letters turned uppercase."
    )
    parser.add_argument("--dictionary-path", help="Path to a word list, one word per line.")
    parser.add_argument(
        "--save-results",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Save test results to the results file.",
    )
    parser.add_argument("--results-path", help="Path of the results CSV file.")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("history", help="Show previous test results in a bar chart.")

    return parser


def resolve_config(args: argparse.Namespace) -> TestConfig:
    """Build the test config from the config file and CLI arguments."""
    file_values: dict[str, Any] = {}
    if args.config:
        file_values = load_config(args.config)
    else:
        default_path = find_default_config()
        if default_path is not None:
            LOGGER.info("Using config file %s", default_path)
            file_values = load_config(default_path)

    overrides = {key: getattr(args, key, None) for key in _OVERRIDE_KEYS}
    return build_config(file_values, overrides)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(
            level=args.log_level,
            json_format=args.json_logs,
            log_file=args.log_file or _default_log_file(),
        )
    except OSError as exc:
        parser.error(f"Unable to open log file: {exc}")

    try:
        config = resolve_config(args)
    except ConfigError as exc:
        parser.error(str(exc))

    store = ResultsStore(config.results_path)

    if args.command == "history":
        warning: Optional[str] = None
        try:
            records = store.load()
        except PersistenceError as exc:
            LOGGER.warning("Unable to read previous results: %s", exc)
            records = []
            warning = f"Unable to read previous results: {exc}"
        run_history(records, warning=warning)
        return 0

    try:
        words = load_dictionary(config.dictionary_path)
    except ConfigError as exc:
        parser.error(str(exc))

    session = TestSession(config, TextGenerator(words, config), results_store=store)
    metrics = run_test(session, results_store=store, colors=config.colors)

    if metrics is None:
        print("Test not finished.")
        return 0

    for line in views.stats_lines(metrics):
        print(line)
    if session.warning:
        print(session.warning)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
