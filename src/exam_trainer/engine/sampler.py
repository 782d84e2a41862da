"""Weighted sampling without replacement."""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Optional, TypeVar

__all__ = ["weighted_sample"]

T = TypeVar("T")


def weighted_sample(
    items: Sequence[tuple[T, int]],
    count: int,
    rng: Optional[random.Random] = None,
) -> list[T]:
    """Draw up to ``count`` distinct items, each step proportional to weight.

    Every draw recomputes the total over the items still in the pool, picks a
    uniform point in ``[0, total)`` and walks the cumulative weights until the
    running sum passes it. Weights below 1 count as 1 so no item becomes
    unselectable. Drawing stops early when the pool runs out.
    """

    if count <= 0 or not items:
        return []
    rng = rng or random.Random()
    remaining = [(item, max(1, weight)) for item, weight in items]
    picked: list[T] = []
    while remaining and len(picked) < count:
        total = sum(weight for _, weight in remaining)
        target = rng.random() * total
        chosen = len(remaining) - 1
        running = 0
        for index, (_, weight) in enumerate(remaining):
            running += weight
            if target < running:
                chosen = index
                break
        item, _ = remaining.pop(chosen)
        picked.append(item)
    return picked
