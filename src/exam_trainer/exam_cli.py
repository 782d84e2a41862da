"""Subcommands for browsing tests, running exams and reading history."""

from __future__ import annotations

import argparse
import logging
import random
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path, PureWindowsPath
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .catalog import (
    AvailableTest,
    Catalog,
    load_question_list,
    question_list_details,
)
from .config import (
    ConfigOverrides,
    ExamConfigError,
    LoadResult,
    default_config_path,
    load_config,
    write_template,
)
from .core import workspace as workspace_mod
from .core.logging import configure_logger
from .engine.builder import build_session
from .engine.errors import EmptySessionError, PersistenceError
from .engine.history import (
    HistoryStore,
    HistorySummary,
    finish_attempt,
    summarize_attempts,
)
from .engine.models import AttemptRecord, TestSession
from .engine.weights import WEIGHTS_FILENAME, WeightStore
from .session import run_exam_session


@dataclass(frozen=True)
class Context:
    """Everything a subcommand needs once configuration is resolved."""

    load_result: LoadResult
    logger: logging.Logger
    log_path: Path
    catalog: Catalog
    history: HistoryStore
    weights: WeightStore


def _common_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to exam.toml (defaults to the workspace config directory).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root (defaults to EXAM_TRAINER_DATA_HOME).",
    )
    parser.add_argument("--log-level", help="Logging level for the log file.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )
    return parser


def _prepare(
    args: argparse.Namespace,
    parser: argparse.ArgumentParser,
    *,
    show_review: Optional[bool] = None,
) -> Context:
    overrides = ConfigOverrides(
        log_level=args.log_level,
        show_review=show_review,
    )
    try:
        load_result = load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except ExamConfigError as exc:
        parser.error(str(exc))

    config = load_result.config
    logger, log_path = configure_logger(
        "exam_trainer",
        log_dir=load_result.layout.path_for("logs"),
        level=config.log_level,
        verbose=args.verbose,
    )
    logger.debug(
        "exam command invoked",
        extra={"prog": parser.prog, "config": load_result.config_path},
    )
    return Context(
        load_result=load_result,
        logger=logger,
        log_path=log_path,
        catalog=Catalog(
            load_result.layout.home,
            tests_dir=config.tests_dir,
            question_lists_dir=config.question_lists_dir,
        ),
        history=HistoryStore(config.history_dir),
        weights=WeightStore(config.history_dir / WEIGHTS_FILENAME),
    )


def _format_seconds(seconds: float) -> str:
    total = int(seconds)
    if total >= 3600:
        return str(timedelta(seconds=total))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def _format_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M")


def _source_name(raw: str) -> str:
    return PureWindowsPath(raw).name or raw


def _passed_cell(summary: HistorySummary) -> str:
    return f"{summary.passed} ({summary.pass_percent}%)"


def _best_cell(summary: HistorySummary) -> str:
    if summary.best is None:
        return "-"
    return f"{summary.best.correct_count}/{summary.best.total_count}"


def _render_test_info(
    console: Console, test: AvailableTest, attempts: Sequence[AttemptRecord]
) -> None:
    definition = test.definition
    info = Table.grid(padding=(0, 2))
    info.add_column(style="bold")
    info.add_column()
    info.add_row("Total questions", str(definition.total_requested))
    for source in definition.question_lists:
        info.add_row("", f"{source.count} from {_source_name(source.path)}")
    info.add_row(
        "Required correct to pass", str(definition.required_correct_to_pass)
    )
    info.add_row("Available time", _format_seconds(definition.max_time_seconds))
    info.add_row("", "")
    summary = summarize_attempts(attempts)
    if summary.last is None:
        info.add_row("History", "No attempts yet.")
    else:
        info.add_row("Attempts", str(summary.attempts))
        info.add_row("Passed", _passed_cell(summary))
        info.add_row("Last taken", _format_timestamp(summary.last.finished_at))
        info.add_row(
            "Last duration", _format_seconds(summary.last.duration_seconds)
        )
        info.add_row(
            "Average duration",
            _format_seconds(summary.average_duration_seconds),
        )
        info.add_row("Best score", _best_cell(summary))
    console.print(
        Panel(
            info,
            title=test.display_name,
            subtitle=test.path.name,
            title_align="left",
            expand=False,
        )
    )


def tests_main(argv: Sequence[str] | None = None) -> int:
    parser = _common_parser(
        "exam tests",
        "List available test definitions, or describe one of them.",
    )
    parser.add_argument("name", nargs="?", help="Test name, file stem or path.")
    args = parser.parse_args(list(argv) if argv is not None else None)
    ctx = _prepare(args, parser)
    console = Console()

    if args.name:
        test = ctx.catalog.find_test(args.name)
        if test is None:
            sys.stderr.write(f"Test '{args.name}' not found.\n")
            return 1
        _render_test_info(console, test, ctx.history.load_attempts(test.path))
        return 0

    tests = ctx.catalog.discover_tests()
    if not tests:
        console.print(f"No test definitions found in {ctx.catalog.tests_dir}.")
        return 1

    table = Table(title="Tests", box=box.SIMPLE)
    table.add_column("Name", style="bold")
    table.add_column("File")
    table.add_column("Questions", justify="right")
    table.add_column("Time limit", justify="right")
    table.add_column("Pass", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Passed", justify="right")
    table.add_column("Best", justify="right")
    for test in tests:
        summary = summarize_attempts(ctx.history.load_attempts(test.path))
        definition = test.definition
        table.add_row(
            test.display_name,
            test.path.name,
            str(definition.total_requested),
            _format_seconds(definition.max_time_seconds),
            str(definition.required_correct_to_pass),
            str(summary.attempts),
            _passed_cell(summary) if summary.attempts else "-",
            _best_cell(summary),
        )
    console.print(table)
    return 0


def lists_main(argv: Sequence[str] | None = None) -> int:
    parser = _common_parser(
        "exam lists",
        "List question lists, or show per-question statistics for one list.",
    )
    parser.add_argument("name", nargs="?", help="Question list name or path.")
    parser.add_argument(
        "--sort",
        choices=["file", "weight", "weight-asc"],
        default="file",
        help=(
            "Order of the per-question rows: file order, heaviest first "
            "or lightest first."
        ),
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    ctx = _prepare(args, parser)
    console = Console()

    if not args.name:
        lists = ctx.catalog.discover_question_lists()
        if not lists:
            console.print(
                f"No question lists found in {ctx.catalog.question_lists_dir}."
            )
            return 1
        table = Table(title="Question lists", box=box.SIMPLE)
        table.add_column("Name", style="bold")
        table.add_column("Questions", justify="right")
        for item in lists:
            questions = load_question_list(item.path)
            count = "unreadable" if questions is None else str(len(questions))
            table.add_row(item.display_name, count)
        console.print(table)
        return 0

    path = ctx.catalog.find_question_list(args.name)
    questions = load_question_list(path) if path is not None else None
    if questions is None:
        sys.stderr.write(f"Question list '{args.name}' not found.\n")
        return 1

    details = question_list_details(
        questions,
        ctx.weights.load(),
        ctx.history.per_question_stats(),
        order=args.sort,
    )
    table = Table(title=path.stem, box=box.SIMPLE, expand=True)
    table.add_column("Question", overflow="fold")
    table.add_column("Answered", justify="right")
    table.add_column("Correct", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Weight", justify="right")
    for detail in details:
        accuracy = detail.accuracy
        table.add_row(
            detail.statement,
            str(detail.times_answered),
            str(detail.times_correct),
            "-" if accuracy is None else f"{accuracy * 100:.1f}%",
            str(detail.weight),
        )
    console.print(table)
    return 0


def start_main(argv: Sequence[str] | None = None) -> int:
    parser = _common_parser("exam start", "Start a timed exam attempt.")
    parser.add_argument("test", help="Test name, file stem or path.")
    parser.add_argument(
        "--review",
        dest="review",
        action="store_true",
        default=None,
        help="Browse the answers interactively after finishing.",
    )
    parser.add_argument(
        "--no-review",
        dest="review",
        action="store_false",
        help="Skip the answer review.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    ctx = _prepare(args, parser, show_review=args.review)

    test = ctx.catalog.find_test(args.test)
    if test is None:
        sys.stderr.write(f"Test '{args.test}' not found.\n")
        return 1

    try:
        session = build_session(
            test.definition,
            ctx.catalog.pool_loader(test.path),
            weights=ctx.weights.load(),
            rng=random.Random(),
        )
    except EmptySessionError as exc:
        ctx.logger.warning(
            "Cannot start test", extra={"test": test.path, "error": str(exc)}
        )
        sys.stderr.write(f"Cannot start test: {exc}\n")
        return 1
    ctx.logger.info(
        "Started exam session",
        extra={"test": test.path, "questions": session.total},
    )

    def _record(finished: TestSession):
        return finish_attempt(finished, test.path, ctx.history, ctx.weights)

    console = Console()
    try:
        result = run_exam_session(
            session,
            console,
            lambda: console.input("> "),
            on_finish=_record,
            show_review=ctx.load_result.config.show_review,
        )
    except PersistenceError as exc:
        ctx.logger.exception("Failed to record attempt")
        sys.stderr.write(f"Failed to record attempt: {exc}\n")
        return 1

    if not result.recorded:
        ctx.logger.info("Exam session abandoned", extra={"test": test.path})
        return 1
    return 0


def history_main(argv: Sequence[str] | None = None) -> int:
    parser = _common_parser("exam history", "Show recorded attempts of a test.")
    parser.add_argument("test", help="Test name, file stem or path.")
    args = parser.parse_args(list(argv) if argv is not None else None)
    ctx = _prepare(args, parser)

    test = ctx.catalog.find_test(args.test)
    if test is None:
        sys.stderr.write(f"Test '{args.test}' not found.\n")
        return 1

    attempts = ctx.history.load_attempts(test.path)
    console = Console()
    _render_test_info(console, test, attempts)
    if not attempts:
        return 0

    table = Table(title="Attempts, newest first", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Started")
    table.add_column("Duration", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Result")
    for number, attempt in enumerate(reversed(attempts), start=1):
        table.add_row(
            str(number),
            _format_timestamp(attempt.started_at),
            _format_seconds(attempt.duration_seconds),
            f"{attempt.correct_count}/{attempt.total_count}",
            "[green]passed[/]" if attempt.passed else "[red]failed[/]",
        )
    console.print(table)
    return 0


def config_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="exam config",
        description="Manage the exam.toml configuration file.",
    )
    sub = parser.add_subparsers(dest="action", required=True)
    sp_init = sub.add_parser("init", help="Write the default exam.toml.")
    sp_init.add_argument("--path", type=Path, help="Destination file.")
    sp_init.add_argument("--workspace", type=Path)
    sp_init.add_argument("--force", action="store_true")
    args = parser.parse_args(list(argv) if argv is not None else None)

    target = args.path
    if target is None:
        try:
            layout = workspace_mod.ensure_workspace(path=args.workspace)
        except workspace_mod.WorkspaceError as exc:
            sys.stderr.write(f"{exc}\n")
            return 2
        target = default_config_path(layout)
    try:
        written = write_template(target, overwrite=args.force)
    except ExamConfigError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    sys.stdout.write(f"Wrote config template to {written}\n")
    return 0
