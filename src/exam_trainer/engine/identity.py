"""Content-derived question identifiers.

The identifier joins a question appearing in any list file, or in an attempt
snapshot, with its weight and history. It depends only on the trimmed
statement and the answers sorted by text, so reordering the options keeps the
same id.
"""

from __future__ import annotations

import hashlib

from .models import Question

__all__ = ["ID_LENGTH", "canonical_form", "question_id"]

ID_LENGTH = 32


def canonical_form(question: Question) -> str:
    """Return the normalized string that ``question_id`` hashes."""

    # Ordinal sort by text; Python's str ordering compares code points.
    answers = sorted(question.answers, key=lambda answer: answer.text)
    rendered = "|".join(
        f"{answer.text}:{'T' if answer.is_correct else 'F'}"
        for answer in answers
    )
    return f"{question.statement.strip()}|{rendered}"


def question_id(question: Question) -> str:
    """Return the stable identifier of ``question``."""

    digest = hashlib.sha256(canonical_form(question).encode("utf-8"))
    return digest.hexdigest().upper()[:ID_LENGTH]
