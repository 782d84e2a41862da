"""Discovery and loading of test definitions and question lists.

Loaders never raise for missing or malformed files; they log and return
``None`` so a single broken list cannot prevent an exam from starting.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional

from .core.files import iter_json_files, read_json
from .engine.builder import PoolLoader
from .engine.history import QuestionStats
from .engine.identity import question_id
from .engine.models import Answer, Question, TestDefinition, parse_question_list
from .engine.weights import weight_of

__all__ = [
    "AvailableQuestionList",
    "AvailableTest",
    "Catalog",
    "QuestionDetail",
    "load_question_list",
    "load_test_definition",
    "question_list_details",
]

DetailOrder = Literal["file", "weight", "weight-asc"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailableTest:
    """A discovered test definition file."""

    path: Path
    definition: TestDefinition

    @property
    def display_name(self) -> str:
        return self.definition.name or self.path.stem


@dataclass(frozen=True)
class AvailableQuestionList:
    path: Path

    @property
    def display_name(self) -> str:
        return self.path.stem


@dataclass(frozen=True)
class QuestionDetail:
    """One row of the question list overview."""

    statement: str
    answers: tuple[Answer, ...]
    times_answered: int
    times_correct: int
    weight: int

    @property
    def accuracy(self) -> Optional[float]:
        """Share of correct answers, or ``None`` when never answered."""

        if self.times_answered == 0:
            return None
        return QuestionStats(self.times_answered, self.times_correct).accuracy


def load_test_definition(path: Path) -> Optional[TestDefinition]:
    try:
        return TestDefinition.from_dict(read_json(path))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.warning(
            "Skipping unreadable test definition",
            extra={"file": path, "error": str(exc)},
        )
        return None


def load_question_list(path: Path) -> Optional[List[Question]]:
    try:
        return parse_question_list(read_json(path))
    except FileNotFoundError:
        logger.warning("Question list not found", extra={"file": path})
        return None
    except (OSError, ValueError) as exc:
        logger.warning(
            "Skipping unreadable question list",
            extra={"file": path, "error": str(exc)},
        )
        return None


def question_list_details(
    questions: Sequence[Question],
    weights: Mapping[str, int],
    stats: Mapping[str, QuestionStats],
    *,
    order: DetailOrder = "file",
) -> list[QuestionDetail]:
    """Return one row per question in file order or sorted by weight.

    ``"weight"`` puts the heaviest questions first and ``"weight-asc"`` the
    lightest; ties keep file order.
    """

    details = []
    for question in questions:
        identity = question_id(question)
        counts = stats.get(identity, QuestionStats())
        details.append(
            QuestionDetail(
                statement=question.statement,
                answers=question.answers,
                times_answered=counts.total,
                times_correct=counts.correct,
                weight=weight_of(weights, identity),
            )
        )
    if order == "weight":
        details.sort(key=lambda detail: detail.weight, reverse=True)
    elif order == "weight-asc":
        details.sort(key=lambda detail: detail.weight)
    elif order != "file":
        raise ValueError(f"Unknown question order '{order}'.")
    return details


class Catalog:
    """Locate tests and question lists relative to a workspace root."""

    def __init__(
        self,
        root: Path,
        *,
        tests_dir: Path,
        question_lists_dir: Path,
    ) -> None:
        self._root = Path(root)
        self._tests_dir = Path(tests_dir)
        self._question_lists_dir = Path(question_lists_dir)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def tests_dir(self) -> Path:
        return self._tests_dir

    @property
    def question_lists_dir(self) -> Path:
        return self._question_lists_dir

    def resolve(self, raw: str, *, relative_to: Optional[Path] = None) -> Path:
        """Resolve ``raw`` against the root, then against ``relative_to``."""

        candidate = Path(raw).expanduser()
        if candidate.is_absolute():
            return candidate
        rooted = self._root / candidate
        if rooted.exists() or relative_to is None:
            return rooted
        local = relative_to / candidate
        return local if local.exists() else rooted

    def discover_tests(self) -> list[AvailableTest]:
        found: list[AvailableTest] = []
        for path in iter_json_files(self._tests_dir):
            definition = load_test_definition(path)
            if definition is not None:
                found.append(AvailableTest(path, definition))
        return found

    def discover_question_lists(self) -> list[AvailableQuestionList]:
        return [
            AvailableQuestionList(path)
            for path in iter_json_files(self._question_lists_dir)
        ]

    def find_test(self, name: str) -> Optional[AvailableTest]:
        """Match ``name`` against a path, file stem or display name."""

        direct = Path(name).expanduser()
        if direct.suffix.lower() == ".json" and direct.is_file():
            definition = load_test_definition(direct)
            if definition is not None:
                return AvailableTest(direct, definition)
        lowered = name.strip().lower()
        for test in self.discover_tests():
            if lowered in (test.path.stem.lower(), test.display_name.lower()):
                return test
        return None

    def find_question_list(self, name: str) -> Optional[Path]:
        direct = Path(name).expanduser()
        if direct.is_file():
            return direct
        lowered = name.strip().lower()
        for item in self.discover_question_lists():
            if item.display_name.lower() == lowered:
                return item.path
        return None

    def pool_loader(self, test_path: Optional[Path] = None) -> PoolLoader:
        base = Path(test_path).parent if test_path is not None else None

        def _load(raw: str) -> Optional[List[Question]]:
            return load_question_list(self.resolve(raw, relative_to=base))

        return _load
