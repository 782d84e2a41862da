"""Assemble exam sessions from weighted question lists."""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Callable, Optional

from .errors import EmptySessionError
from .identity import question_id
from .models import Question, TestDefinition, TestSession, utc_now
from .sampler import weighted_sample
from .weights import weight_of

__all__ = ["PoolLoader", "build_session", "draw_from_pool"]

# Returns the questions of a list path, or None when it is missing/unreadable.
PoolLoader = Callable[[str], Optional[Sequence[Question]]]

logger = logging.getLogger(__name__)


def draw_from_pool(
    questions: Sequence[Question],
    count: int,
    weights: Mapping[str, int],
    rng: random.Random,
) -> list[Question]:
    """Weighted draw of ``count`` questions, clamped to the pool size."""

    take = min(count, len(questions))
    weighted = [
        (question, weight_of(weights, question_id(question)))
        for question in questions
    ]
    return weighted_sample(weighted, take, rng)


def build_session(
    definition: TestDefinition,
    load_pool: PoolLoader,
    *,
    weights: Optional[Mapping[str, int]] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> TestSession:
    """Draw every configured list and shuffle the result into one session.

    Lists that cannot be loaded or are empty are skipped. The concatenated
    draw is shuffled once so a question's position does not reveal its list.
    Raises :class:`EmptySessionError` when nothing could be drawn.
    """

    rng = rng or random.Random()
    snapshot = weights or {}
    picked: list[Question] = []
    for source in definition.question_lists:
        questions = load_pool(source.path)
        if not questions:
            logger.warning(
                "Skipping unavailable question list",
                extra={"source": source.path},
            )
            continue
        drawn = draw_from_pool(questions, source.count, snapshot, rng)
        logger.debug(
            "Drew questions from list",
            extra={
                "source": source.path,
                "requested": source.count,
                "available": len(questions),
                "drawn": len(drawn),
            },
        )
        picked.extend(drawn)

    if not picked:
        raise EmptySessionError(
            "No questions available for test "
            f"'{definition.name or 'unnamed'}'."
        )

    rng.shuffle(picked)
    return TestSession(
        definition=definition,
        questions=picked,
        selections=[set() for _ in picked],
        max_time=definition.max_time,
        started_at=now or utc_now(),
    )
