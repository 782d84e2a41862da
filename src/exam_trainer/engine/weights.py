"""Persistent per-question selection weights.

Each question id maps to an integer weight in ``[MIN_WEIGHT, MAX_WEIGHT]``.
After an attempt, a correct answer lowers the weight by one and a wrong answer
raises it by five, so missed material resurfaces quickly while mastered
questions fade out slowly. Questions never seen by the sampler get the maximum
weight; questions never scored start updates from ``DEFAULT_WEIGHT``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import ExitStack, contextmanager
from pathlib import Path

from ..core.files import FileLock, FileLockTimeout, atomic_write_json, read_json
from .errors import PersistenceError

__all__ = [
    "CORRECT_DELTA",
    "DEFAULT_WEIGHT",
    "INCORRECT_DELTA",
    "MAX_WEIGHT",
    "MIN_WEIGHT",
    "STALE_LOCK_SECONDS",
    "WEIGHTS_FILENAME",
    "WeightStore",
    "apply_to_table",
    "clamp_weight",
    "next_weight",
    "weight_of",
]

MIN_WEIGHT = 1
MAX_WEIGHT = 20
DEFAULT_WEIGHT = 10
CORRECT_DELTA = -1
INCORRECT_DELTA = 5

WEIGHTS_FILENAME = "QuestionStats.json"
STALE_LOCK_SECONDS = 60.0

logger = logging.getLogger(__name__)


def clamp_weight(value: int) -> int:
    return max(MIN_WEIGHT, min(MAX_WEIGHT, value))


def next_weight(current: int, was_correct: bool) -> int:
    delta = CORRECT_DELTA if was_correct else INCORRECT_DELTA
    return clamp_weight(current + delta)


def weight_of(snapshot: Mapping[str, int], identity: str) -> int:
    """Look ``identity`` up in a loaded table; unseen ids get ``MAX_WEIGHT``."""

    stored = snapshot.get(identity)
    if stored is None:
        return MAX_WEIGHT
    return clamp_weight(stored)


class WeightStore:
    """Load, update and save the weight table stored at ``path``."""

    def __init__(
        self,
        path: Path,
        *,
        lock_timeout: float = 5.0,
        stale_lock_after: float = STALE_LOCK_SECONDS,
    ) -> None:
        self._path = Path(path)
        self._lock_path = self._path.with_name(self._path.name + ".lock")
        self._lock_timeout = lock_timeout
        self._stale_lock_after = stale_lock_after

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    def load(self) -> dict[str, int]:
        """Return the persisted table, or ``{}`` when missing or unreadable."""

        try:
            payload = read_json(self._path)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning(
                "Ignoring unreadable weight table",
                extra={"path": self._path, "error": str(exc)},
            )
            return {}
        if not isinstance(payload, dict):
            logger.warning(
                "Ignoring weight table with unexpected shape",
                extra={"path": self._path},
            )
            return {}
        table: dict[str, int] = {}
        for key, value in payload.items():
            if isinstance(value, bool) or not isinstance(value, int):
                continue
            table[str(key)] = value
        return table

    def save(self, table: Mapping[str, int]) -> None:
        """Persist ``table`` in full, replacing the previous content."""

        try:
            atomic_write_json(self._path, dict(table))
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(
                f"Failed to save weight table: {self._path}"
            ) from exc
        logger.debug(
            "Saved weight table",
            extra={"path": self._path, "entries": len(table)},
        )

    @contextmanager
    def updating(self) -> Iterator[dict[str, int]]:
        """Hold the table lock and yield the loaded table for changes.

        The table is saved when the block exits normally; an exception inside
        the block leaves the stored table untouched. A lock that cannot be
        acquired raises :class:`PersistenceError` before the block runs.
        """

        lock = FileLock(
            self._lock_path,
            timeout=self._lock_timeout,
            stale_after=self._stale_lock_after,
        )
        with ExitStack() as stack:
            try:
                stack.enter_context(lock)
            except (FileLockTimeout, OSError) as exc:
                raise PersistenceError(
                    f"Failed to lock weight table: {self._path}"
                ) from exc
            table = self.load()
            yield table
            self.save(table)

    def apply_outcomes(
        self, outcomes: Iterable[tuple[str, bool]]
    ) -> dict[str, int]:
        """Apply per-question outcomes to the persisted table in one save.

        Each outcome starts from the current stored weight (``DEFAULT_WEIGHT``
        when unseen), so a question occurring twice in ``outcomes`` is
        adjusted twice.
        """

        with self.updating() as table:
            applied = apply_to_table(table, outcomes)
        logger.info(
            "Applied attempt outcomes to weight table",
            extra={"path": self._path, "outcomes": applied},
        )
        return table


def apply_to_table(
    table: dict[str, int], outcomes: Iterable[tuple[str, bool]]
) -> int:
    """Update ``table`` in place and return how many outcomes were applied."""

    applied = 0
    for identity, was_correct in outcomes:
        current = table.get(identity, DEFAULT_WEIGHT)
        table[identity] = next_weight(current, was_correct)
        applied += 1
    return applied
