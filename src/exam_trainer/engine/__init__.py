"""Adaptive weighted question selection and scoring."""

from __future__ import annotations

from .builder import PoolLoader, build_session, draw_from_pool
from .errors import EmptySessionError, ExamError, PersistenceError
from .history import (
    HistoryStore,
    HistorySummary,
    QuestionStats,
    attempt_outcomes,
    build_record,
    finish_attempt,
    summarize_attempts,
)
from .identity import question_id
from .models import (
    Answer,
    AttemptRecord,
    DocumentError,
    Question,
    QuestionListSource,
    TestDefinition,
    TestSession,
    parse_question_list,
)
from .sampler import weighted_sample
from .scoring import (
    count_correct,
    did_pass,
    elapsed,
    is_correct,
    is_expired,
    remaining,
    wrong_indices,
)
from .weights import WeightStore, weight_of

__all__ = [
    "Answer",
    "AttemptRecord",
    "DocumentError",
    "EmptySessionError",
    "ExamError",
    "HistoryStore",
    "HistorySummary",
    "PersistenceError",
    "PoolLoader",
    "Question",
    "QuestionListSource",
    "QuestionStats",
    "TestDefinition",
    "TestSession",
    "WeightStore",
    "attempt_outcomes",
    "build_record",
    "build_session",
    "count_correct",
    "did_pass",
    "draw_from_pool",
    "elapsed",
    "finish_attempt",
    "is_correct",
    "is_expired",
    "parse_question_list",
    "question_id",
    "remaining",
    "summarize_attempts",
    "weight_of",
    "weighted_sample",
    "wrong_indices",
]
