"""Exceptions raised by the exam engine."""

from __future__ import annotations

__all__ = [
    "ExamError",
    "EmptySessionError",
    "PersistenceError",
]


class ExamError(RuntimeError):
    """Base class for engine failures surfaced to callers."""


class EmptySessionError(ExamError):
    """Raised when a session build draws zero questions from every pool."""


class PersistenceError(ExamError):
    """Raised when the weight table or an attempt history cannot be written."""
