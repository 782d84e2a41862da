"""Scoring helpers for exam sessions.

All functions are pure reads of the session state and may be called while the
attempt is still running, e.g. to jump between wrong answers during review.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Optional

from .models import Question, TestSession, utc_now

__all__ = [
    "count_correct",
    "did_pass",
    "elapsed",
    "is_correct",
    "is_expired",
    "remaining",
    "wrong_indices",
]


def is_correct(question: Question, selected: Iterable[int]) -> bool:
    """True when ``selected`` is exactly the set of correct answer indices."""

    return question.correct_indices == frozenset(selected)


def count_correct(session: TestSession) -> int:
    return sum(
        1
        for question, selected in zip(session.questions, session.selections)
        if is_correct(question, selected)
    )


def did_pass(session: TestSession) -> bool:
    return count_correct(session) >= session.definition.required_correct_to_pass


def wrong_indices(session: TestSession) -> list[int]:
    """Positions whose current selection does not score as correct."""

    return [
        index
        for index, (question, selected) in enumerate(
            zip(session.questions, session.selections)
        )
        if not is_correct(question, selected)
    ]


def elapsed(session: TestSession, now: Optional[datetime] = None) -> timedelta:
    end = session.finished_at or now or utc_now()
    return max(timedelta(0), end - session.started_at)


def remaining(session: TestSession, now: Optional[datetime] = None) -> timedelta:
    return max(timedelta(0), session.max_time - elapsed(session, now))


def is_expired(session: TestSession, now: Optional[datetime] = None) -> bool:
    return elapsed(session, now) >= session.max_time
