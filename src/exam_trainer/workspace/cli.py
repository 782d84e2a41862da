"""``exam init``: create the data directory and report its folders."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from exam_trainer.core import workspace as workspace_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exam init",
        description=(
            "Create the exam-trainer workspace with its Tests, QuestionLists "
            "and History directories."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            f"Workspace root (defaults to {workspace_mod.WORKSPACE_ENV} "
            "or ~/.exam-trainer-data)."
        ),
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Print nothing on success.",
    )
    return parser


def _layout_table(layout: workspace_mod.WorkspaceLayout) -> Table:
    table = Table(box=box.SIMPLE, show_header=True)
    table.add_column("Folder", style="bold")
    table.add_column("Path", overflow="fold")
    table.add_column("Status")
    for name, directory in layout.items():
        fresh = layout.created.get(name, False)
        table.add_row(
            name,
            str(directory),
            "[green]created[/]" if fresh else "[dim]exists[/]",
        )
    return table


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"{exc}\n")
        return 2

    if args.quiet:
        return 0

    console = Console(soft_wrap=True)
    state = "created" if layout.created.get("home") else "exists"
    console.print(f"Workspace ready at {layout.home} ({state})", highlight=False)
    console.print(_layout_table(layout))
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
