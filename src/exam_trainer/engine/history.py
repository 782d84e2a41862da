"""Append-only attempt history, one JSON file per test definition.

Finishing an attempt writes a snapshot of every question with the answers the
user ticked, then feeds the per-question outcomes into the weight table so the
next session favours what was missed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from ..core.files import atomic_write_json, iter_json_files, read_json
from .errors import PersistenceError
from .identity import question_id
from .models import AttemptRecord, TestSession, sorted_selections, utc_now
from .scoring import count_correct, is_correct
from .weights import WEIGHTS_FILENAME, WeightStore, apply_to_table

__all__ = [
    "HistoryStore",
    "HistorySummary",
    "QuestionStats",
    "attempt_outcomes",
    "build_record",
    "finish_attempt",
    "summarize_attempts",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionStats:
    """How often a question was answered across all recorded attempts."""

    total: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total


def build_record(
    session: TestSession, now: Optional[datetime] = None
) -> AttemptRecord:
    """Snapshot ``session``; the finish time defaults to ``now``."""

    finished = session.finished_at or now or utc_now()
    correct = count_correct(session)
    return AttemptRecord(
        started_at=session.started_at,
        finished_at=finished,
        duration_seconds=(finished - session.started_at).total_seconds(),
        passed=correct >= session.definition.required_correct_to_pass,
        correct_count=correct,
        total_count=session.total,
        required_to_pass=session.definition.required_correct_to_pass,
        questions=tuple(session.questions),
        user_selections=sorted_selections(session.selections),
    )


def attempt_outcomes(record: AttemptRecord) -> list[tuple[str, bool]]:
    return [
        (question_id(question), is_correct(question, record.selections_for(i)))
        for i, question in enumerate(record.questions)
    ]


class HistoryStore:
    """Read and append attempt logs stored under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, test_path: Path) -> Path:
        return self._directory / f"{Path(test_path).stem}.json"

    def load_attempts(self, test_path: Path) -> list[AttemptRecord]:
        """Return recorded attempts, or ``[]`` when missing or unreadable."""

        return self._read(self.path_for(test_path))

    def append_attempt(self, test_path: Path, record: AttemptRecord) -> Path:
        target = self.path_for(test_path)
        attempts = self._read(target)
        attempts.append(record)
        try:
            atomic_write_json(
                target, [attempt.to_dict() for attempt in attempts]
            )
        except OSError as exc:
            raise PersistenceError(
                f"Failed to save attempt history: {target}"
            ) from exc
        logger.info(
            "Recorded attempt",
            extra={
                "history": target,
                "passed": record.passed,
                "correct": record.correct_count,
                "total": record.total_count,
            },
        )
        return target

    def per_question_stats(self) -> dict[str, QuestionStats]:
        """Aggregate answered/correct counts per question id over all tests."""

        totals: dict[str, list[int]] = {}
        for path in iter_json_files(self._directory):
            if path.name.lower() == WEIGHTS_FILENAME.lower():
                continue
            for record in self._read(path):
                for identity, correct in attempt_outcomes(record):
                    bucket = totals.setdefault(identity, [0, 0])
                    bucket[0] += 1
                    bucket[1] += int(correct)
        return {
            identity: QuestionStats(total=total, correct=correct)
            for identity, (total, correct) in totals.items()
        }

    def _read(self, path: Path) -> list[AttemptRecord]:
        try:
            payload = read_json(path)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            logger.warning(
                "Ignoring unreadable history file",
                extra={"history": path, "error": str(exc)},
            )
            return []
        if not isinstance(payload, list):
            return []
        try:
            return [AttemptRecord.from_dict(item) for item in payload]
        except ValueError as exc:
            logger.warning(
                "Ignoring malformed history file",
                extra={"history": path, "error": str(exc)},
            )
            return []


def finish_attempt(
    session: TestSession,
    test_path: Path,
    history: HistoryStore,
    weights: WeightStore,
    *,
    now: Optional[datetime] = None,
) -> AttemptRecord:
    """Close ``session``, append its record and update the weight table.

    The history append happens while the weight-table lock is held, so a
    lock that cannot be taken leaves both files untouched.
    """

    session.finish(now)
    record = build_record(session)
    with weights.updating() as table:
        history.append_attempt(test_path, record)
        applied = apply_to_table(table, attempt_outcomes(record))
    logger.info(
        "Applied attempt outcomes to weight table",
        extra={"path": weights.path, "outcomes": applied},
    )
    return record


@dataclass(frozen=True)
class HistorySummary:
    """Aggregate figures over every recorded attempt of one test."""

    attempts: int = 0
    passed: int = 0
    last: Optional[AttemptRecord] = None
    best: Optional[AttemptRecord] = None
    average_duration_seconds: float = 0.0

    @property
    def pass_percent(self) -> int:
        if self.attempts == 0:
            return 0
        return round(100 * self.passed / self.attempts)


def summarize_attempts(attempts: Sequence[AttemptRecord]) -> HistorySummary:
    """Summarise ``attempts``; ties keep the earliest entry in file order."""

    if not attempts:
        return HistorySummary()
    return HistorySummary(
        attempts=len(attempts),
        passed=sum(1 for attempt in attempts if attempt.passed),
        last=max(attempts, key=lambda attempt: attempt.finished_at),
        best=max(attempts, key=lambda attempt: attempt.correct_count),
        average_duration_seconds=(
            sum(attempt.duration_seconds for attempt in attempts)
            / len(attempts)
        ),
    )
