"""Adaptive multiple-choice exam practice."""

from __future__ import annotations

from .engine import (
    AttemptRecord,
    EmptySessionError,
    ExamError,
    HistoryStore,
    PersistenceError,
    Question,
    TestDefinition,
    TestSession,
    WeightStore,
    build_session,
    count_correct,
    did_pass,
    finish_attempt,
    is_correct,
    question_id,
)

__all__ = [
    "AttemptRecord",
    "EmptySessionError",
    "ExamError",
    "HistoryStore",
    "PersistenceError",
    "Question",
    "TestDefinition",
    "TestSession",
    "WeightStore",
    "build_session",
    "count_correct",
    "did_pass",
    "finish_attempt",
    "is_correct",
    "question_id",
]
