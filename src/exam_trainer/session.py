"""Rich-powered exam session loop.

The loop renders one question at a time, lets the user tick any number of
options, move between questions and finish the attempt. Finishing is refused
until every question has been shown at least once. The time limit is checked
after every input: once it has passed, the attempt is finished as expired and
the pending command is discarded. Persistence is delegated to the
``on_finish`` callback so the loop stays testable without a workspace.

After the summary, the same input drives a read-only review where ``nw`` and
``pw`` jump between wrongly answered questions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Literal, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .engine.history import build_record
from .engine.models import AttemptRecord, TestSession, utc_now
from .engine.scoring import is_correct, is_expired, remaining, wrong_indices

InputProvider = Callable[[], str]
Clock = Callable[[], datetime]
FinishHandler = Callable[[TestSession], AttemptRecord]
ExitAction = Literal["finished", "expired", "quit"]
CommandType = Literal[
    "toggle", "next", "prev", "goto", "next_wrong", "prev_wrong", "finish", "quit"
]

_INTERRUPTS = (EOFError, KeyboardInterrupt, StopIteration)


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: CommandType
    value: Optional[int] = None


@dataclass(frozen=True)
class ExamSessionResult:
    """Return value from ``run_exam_session``."""

    exit_action: ExitAction
    record: Optional[AttemptRecord]

    @property
    def recorded(self) -> bool:
        return self.record is not None


@dataclass
class ExamSessionState:
    """Cursor over a ``TestSession`` shared by the render/command helpers."""

    session: TestSession
    index: int = 0
    visited: set[int] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.visited.add(self.index)

    @property
    def total_questions(self) -> int:
        return self.session.total

    def toggle(self, option: int) -> bool:
        """Toggle the 1-based ``option`` of the current question."""

        return self.session.toggle(self.index, option - 1)

    def next(self) -> None:
        if self.index + 1 < self.total_questions:
            self._move(self.index + 1)

    def previous(self) -> None:
        if self.index > 0:
            self._move(self.index - 1)

    def goto(self, number: int) -> bool:
        if 1 <= number <= self.total_questions:
            self._move(number - 1)
            return True
        return False

    def next_wrong(self) -> bool:
        for index in wrong_indices(self.session):
            if index > self.index:
                self._move(index)
                return True
        return False

    def previous_wrong(self) -> bool:
        for index in reversed(wrong_indices(self.session)):
            if index < self.index:
                self._move(index)
                return True
        return False

    def unvisited(self) -> list[int]:
        """Return 1-based numbers of questions not shown yet."""

        return [
            index + 1
            for index in range(self.total_questions)
            if index not in self.visited
        ]

    def _move(self, index: int) -> None:
        self.index = index
        self.visited.add(index)


def parse_session_command(raw: Optional[str]) -> Optional[SessionCommand]:
    """Parse raw user input into a structured command."""

    if raw is None:
        return None
    text = raw.strip().lower()
    if not text:
        return None
    if text.isdigit():
        return SessionCommand("toggle", int(text))
    if text in {"n", "next"}:
        return SessionCommand("next")
    if text in {"p", "prev", "previous"}:
        return SessionCommand("prev")
    if text in {"nw", "next-wrong"}:
        return SessionCommand("next_wrong")
    if text in {"pw", "prev-wrong"}:
        return SessionCommand("prev_wrong")
    if text in {"f", "finish", "submit", "done"}:
        return SessionCommand("finish")
    if text in {"q", "quit", "exit"}:
        return SessionCommand("quit")
    head, _, tail = text.partition(" ")
    if head in {"g", "goto"} and tail.strip().isdigit():
        return SessionCommand("goto", int(tail.strip()))
    return None


def run_exam_session(
    session: TestSession,
    console: Console,
    input_provider: InputProvider,
    *,
    clock: Clock = utc_now,
    on_finish: Optional[FinishHandler] = None,
    show_review: bool = True,
) -> ExamSessionResult:
    """Drive ``session`` until the user finishes, quits or time runs out.

    An interrupt (EOF or Ctrl-C) quits without recording unless the time
    limit has already passed, in which case the attempt is recorded as
    expired.
    """

    state = ExamSessionState(session)
    exit_action: ExitAction = "quit"
    while True:
        _render_question(console, state, clock())
        try:
            raw = input_provider()
        except _INTERRUPTS:
            if is_expired(session, clock()):
                console.print("\n[bold red]Time is up.[/]")
                exit_action = "expired"
            else:
                console.print("\n[bold yellow]Session interrupted.[/]")
            break
        if is_expired(session, clock()):
            console.print("\n[bold red]Time is up.[/]")
            exit_action = "expired"
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        outcome = _apply_command(command, state, console)
        if outcome:
            exit_action = outcome
            break

    if exit_action == "quit":
        console.print("[yellow]Attempt discarded; nothing was recorded.[/]")
        return ExamSessionResult("quit", None)

    session.finish(clock())
    record = on_finish(session) if on_finish else build_record(session)
    _render_summary(console, record)
    if show_review:
        run_review(session, console, input_provider)
    return ExamSessionResult(exit_action, record)


def run_review(
    session: TestSession,
    console: Console,
    input_provider: InputProvider,
) -> None:
    """Browse a finished session read-only until the user is done."""

    wrong = wrong_indices(session)
    if wrong:
        console.print(
            f"[bold red]{len(wrong)} of {session.total} answers were wrong.[/]"
        )
    else:
        console.print("[bold green]Every answer was correct.[/]")
    state = ExamSessionState(session, index=wrong[0] if wrong else 0)
    while True:
        _render_review_question(console, state)
        try:
            raw = input_provider()
        except _INTERRUPTS:
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type in ("finish", "quit"):
            break
        if command.type == "toggle":
            console.print("[red]Answers cannot be changed during review.[/]")
            continue
        _navigate(command, state, console)


def _apply_command(
    command: SessionCommand,
    state: ExamSessionState,
    console: Console,
) -> Optional[ExitAction]:
    if command.type == "toggle" and command.value is not None:
        if not state.toggle(command.value):
            console.print(
                f"[red]'{command.value}' is not an option of this question.[/]"
            )
        return None
    if command.type in ("next_wrong", "prev_wrong"):
        console.print(
            "[red]Wrong-answer navigation is only available in review.[/]"
        )
        return None
    if command.type == "finish":
        pending = state.unvisited()
        if pending:
            numbers = ", ".join(str(number) for number in pending)
            console.print(
                f"[red]Visit every question before finishing; "
                f"not seen yet: {numbers}.[/]"
            )
            return None
        return "finished"
    if command.type == "quit":
        console.print("\n[bold yellow]Ending session without recording.[/]")
        return "quit"
    _navigate(command, state, console)
    return None


def _navigate(
    command: SessionCommand, state: ExamSessionState, console: Console
) -> None:
    if command.type == "next":
        state.next()
    elif command.type == "prev":
        state.previous()
    elif command.type == "goto" and command.value is not None:
        if not state.goto(command.value):
            console.print(f"[red]No question number {command.value}.[/]")
    elif command.type == "next_wrong":
        if not state.next_wrong():
            console.print("[yellow]No wrong answer after this question.[/]")
    elif command.type == "prev_wrong":
        if not state.previous_wrong():
            console.print("[yellow]No wrong answer before this question.[/]")


def _format_clock(delta: timedelta) -> str:
    seconds = int(delta.total_seconds())
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def _render_question(
    console: Console, state: ExamSessionState, now: datetime
) -> None:
    session = state.session
    question = session.questions[state.index]
    selected = session.selections[state.index]
    header = Text.assemble(
        (f"Question {state.index + 1}", "bold cyan"),
        (f" / {state.total_questions}", "dim"),
        (f"  ⏱ {_format_clock(remaining(session, now))}", "yellow"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.statement, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="right", style="cyan")
    table.add_column("Mark", justify="center")
    table.add_column("Answer")
    for number, answer in enumerate(question.answers, start=1):
        ticked = (number - 1) in selected
        text = Text(answer.text)
        if ticked:
            text.stylize("bold green")
        mark = Text("[x]" if ticked else "[ ]", style="green" if ticked else "dim")
        table.add_row(str(number), mark, text)
    console.print(table)
    console.print(
        Text(
            f"Answered {session.answered_count()}/{state.total_questions} | "
            f"Seen {len(state.visited)}/{state.total_questions} | "
            "Commands: <number> toggle, n (next), p (prev), g <n> (goto), "
            "finish, quit",
            style="dim",
        )
    )


def _render_summary(console: Console, record: AttemptRecord) -> None:
    console.print()
    console.rule(Text("Exam Summary", style="bold magenta"))
    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Correct", f"{record.correct_count}/{record.total_count}")
    overview.add_row("Required to pass", str(record.required_to_pass))
    overview.add_row(
        "Duration",
        _format_clock(timedelta(seconds=record.duration_seconds)),
    )
    verdict = (
        Text("PASSED", style="bold green")
        if record.passed
        else Text("FAILED", style="bold red")
    )
    overview.add_row("Result", verdict)
    console.print(overview)


def _render_review_question(console: Console, state: ExamSessionState) -> None:
    session = state.session
    number = state.index + 1
    question = session.questions[number - 1]
    selected = session.selections[number - 1]
    correct = is_correct(question, selected)
    lines = []
    for option, answer in enumerate(question.answers, start=1):
        mark = "✔" if answer.is_correct else " "
        picked = "you" if (option - 1) in selected else "   "
        lines.append(f"{mark} {picked}  {option}. {answer.text}")
    console.print()
    console.print(
        Panel(
            Text("\n".join(lines)),
            title=f"Question {number}: {question.statement}",
            title_align="left",
            subtitle="correct" if correct else "wrong",
            subtitle_align="right",
            border_style="green" if correct else "red",
        )
    )
    console.print(
        Text(
            f"Review {number}/{state.total_questions} | "
            "Commands: n (next), p (prev), nw (next wrong), pw (prev wrong), "
            "g <n> (goto), done",
            style="dim",
        )
    )
