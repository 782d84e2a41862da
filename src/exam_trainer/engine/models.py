"""Data structures shared by the exam engine, plus their JSON codecs.

Every persisted document (question lists, test definitions, attempt
history) round-trips through ``to_dict`` / ``from_dict``. Readers match keys
case-insensitively and ignore underscores, so both ``is_correct`` and the
``IsCorrect`` spelling written by older tools are accepted. Malformed
documents raise :class:`DocumentError`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

__all__ = [
    "Answer",
    "AttemptRecord",
    "DocumentError",
    "Question",
    "QuestionListSource",
    "TestDefinition",
    "TestSession",
    "parse_question_list",
    "sorted_selections",
    "utc_now",
]


class DocumentError(ValueError):
    """Raised when a JSON document does not match the expected shape."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Answer:
    """One answer option of a question."""

    text: str
    is_correct: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "is_correct": self.is_correct}

    @classmethod
    def from_dict(cls, payload: object) -> "Answer":
        data = _require_mapping(payload, "answer")
        return cls(
            text=_as_str(_lookup(data, "text", ""), "answer.text"),
            is_correct=_as_bool(
                _lookup(data, "is_correct", False), "answer.is_correct"
            ),
        )


@dataclass(frozen=True)
class Question:
    """A statement with ordered answer options, any number of them correct.

    Attempt records store questions in the same shape, so a question doubles
    as its own history snapshot.
    """

    statement: str
    answers: tuple[Answer, ...] = ()

    @property
    def correct_indices(self) -> frozenset[int]:
        return frozenset(
            index
            for index, answer in enumerate(self.answers)
            if answer.is_correct
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "statement": self.statement,
            "answers": [answer.to_dict() for answer in self.answers],
        }

    @classmethod
    def from_dict(cls, payload: object) -> "Question":
        data = _require_mapping(payload, "question")
        raw_answers = _lookup(data, "answers", [])
        if not isinstance(raw_answers, list):
            raise DocumentError("question.answers must be a list.")
        return cls(
            statement=_as_str(
                _lookup(data, "statement", ""), "question.statement"
            ),
            answers=tuple(Answer.from_dict(item) for item in raw_answers),
        )


def parse_question_list(payload: object) -> list[Question]:
    """Decode a question list document (a JSON array of questions)."""

    if isinstance(payload, Mapping):
        # Tolerate the ``{"questions": [...]}`` wrapper.
        payload = _lookup(payload, "questions", None)
    if not isinstance(payload, list):
        raise DocumentError("Question list must be a JSON array.")
    return [Question.from_dict(item) for item in payload]


@dataclass(frozen=True)
class QuestionListSource:
    """A question list path and how many questions to draw from it."""

    path: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "count": self.count}

    @classmethod
    def from_dict(cls, payload: object) -> "QuestionListSource":
        data = _require_mapping(payload, "question list source")
        return cls(
            path=_as_str(_lookup(data, "path", ""), "question_lists.path"),
            count=_as_int(_lookup(data, "count", 0), "question_lists.count"),
        )


@dataclass(frozen=True)
class TestDefinition:
    """Time limit, pass threshold and question sources of one test."""

    __test__ = False  # keep pytest from collecting this as a test class

    max_time_seconds: int
    required_correct_to_pass: int
    question_lists: tuple[QuestionListSource, ...] = ()
    name: Optional[str] = None

    @property
    def max_time(self) -> timedelta:
        return timedelta(seconds=self.max_time_seconds)

    @property
    def total_requested(self) -> int:
        return sum(max(0, source.count) for source in self.question_lists)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.name is not None:
            payload["name"] = self.name
        payload.update(
            {
                "max_time_seconds": self.max_time_seconds,
                "required_correct_to_pass": self.required_correct_to_pass,
                "question_lists": [
                    source.to_dict() for source in self.question_lists
                ],
            }
        )
        return payload

    @classmethod
    def from_dict(cls, payload: object) -> "TestDefinition":
        data = _require_mapping(payload, "test definition")
        raw_sources = _lookup(data, "question_lists", [])
        if not isinstance(raw_sources, list):
            raise DocumentError("question_lists must be a list.")
        name = _lookup(data, "name", None)
        return cls(
            name=None if name is None else _as_str(name, "name"),
            max_time_seconds=_as_int(
                _lookup(data, "max_time_seconds", 0), "max_time_seconds"
            ),
            required_correct_to_pass=_as_int(
                _lookup(data, "required_correct_to_pass", 0),
                "required_correct_to_pass",
            ),
            question_lists=tuple(
                QuestionListSource.from_dict(item) for item in raw_sources
            ),
        )


@dataclass
class TestSession:
    """Working state of one exam attempt.

    ``selections[i]`` holds the answer indices currently ticked for
    ``questions[i]``; both lists always have the same length.
    """

    __test__ = False

    definition: TestDefinition
    questions: list[Question]
    selections: list[set[int]] = field(default_factory=list)
    max_time: timedelta = timedelta(0)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.selections:
            self.selections = [set() for _ in self.questions]
        if len(self.selections) != len(self.questions):
            raise ValueError(
                "selections must align with questions "
                f"({len(self.selections)} != {len(self.questions)})"
            )

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None

    def toggle(self, index: int, answer_index: int) -> bool:
        """Flip ``answer_index`` for question ``index``; False if invalid."""

        if self.is_finished or not 0 <= index < self.total:
            return False
        if not 0 <= answer_index < len(self.questions[index].answers):
            return False
        selected = self.selections[index]
        if answer_index in selected:
            selected.discard(answer_index)
        else:
            selected.add(answer_index)
        return True

    def answered_count(self) -> int:
        return sum(1 for selected in self.selections if selected)

    def finish(self, when: Optional[datetime] = None) -> datetime:
        if self.finished_at is None:
            self.finished_at = when or utc_now()
        return self.finished_at


@dataclass(frozen=True)
class AttemptRecord:
    """Immutable history entry for one finished session."""

    started_at: datetime
    finished_at: datetime
    duration_seconds: float
    passed: bool
    correct_count: int
    total_count: int
    required_to_pass: int
    questions: tuple[Question, ...] = ()
    user_selections: tuple[tuple[int, ...], ...] = ()

    def selections_for(self, index: int) -> frozenset[int]:
        if index < len(self.user_selections):
            return frozenset(self.user_selections[index])
        return frozenset()

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "passed": self.passed,
            "correct_count": self.correct_count,
            "total_count": self.total_count,
            "required_to_pass": self.required_to_pass,
            "questions": [question.to_dict() for question in self.questions],
            "user_selections": [
                list(selected) for selected in self.user_selections
            ],
        }

    @classmethod
    def from_dict(cls, payload: object) -> "AttemptRecord":
        data = _require_mapping(payload, "attempt record")
        raw_questions = _lookup(data, "questions", [])
        raw_selections = _lookup(data, "user_selections", [])
        if not isinstance(raw_questions, list) or not isinstance(
            raw_selections, list
        ):
            raise DocumentError(
                "questions and user_selections must be lists."
            )
        return cls(
            started_at=_as_datetime(
                _lookup(data, "started_at", None), "started_at"
            ),
            finished_at=_as_datetime(
                _lookup(data, "finished_at", None), "finished_at"
            ),
            duration_seconds=float(
                _lookup(data, "duration_seconds", 0.0) or 0.0
            ),
            passed=_as_bool(_lookup(data, "passed", False), "passed"),
            correct_count=_as_int(
                _lookup(data, "correct_count", 0), "correct_count"
            ),
            total_count=_as_int(_lookup(data, "total_count", 0), "total_count"),
            required_to_pass=_as_int(
                _lookup(data, "required_to_pass", 0), "required_to_pass"
            ),
            questions=tuple(Question.from_dict(item) for item in raw_questions),
            user_selections=tuple(
                _as_index_tuple(item) for item in raw_selections
            ),
        )


def _normalize_key(key: str) -> str:
    return key.replace("_", "").lower()


def _lookup(data: Mapping[str, Any], key: str, default: Any) -> Any:
    if key in data:
        return data[key]
    wanted = _normalize_key(key)
    for candidate, value in data.items():
        if isinstance(candidate, str) and _normalize_key(candidate) == wanted:
            return value
    return default


def _require_mapping(payload: object, label: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise DocumentError(f"Expected an object for {label}.")
    return payload


def _as_str(value: object, label: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DocumentError(f"{label} must be a string.")
    return value


def _as_bool(value: object, label: str) -> bool:
    if not isinstance(value, bool):
        raise DocumentError(f"{label} must be true or false.")
    return value


def _as_int(value: object, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DocumentError(f"{label} must be an integer.")
    if isinstance(value, float) and not value.is_integer():
        raise DocumentError(f"{label} must be an integer.")
    return int(value)


def _as_index_tuple(value: object) -> tuple[int, ...]:
    if not isinstance(value, Iterable) or isinstance(value, (str, bytes)):
        raise DocumentError("user_selections entries must be lists.")
    return tuple(sorted({_as_int(item, "user_selections") for item in value}))


def _as_datetime(value: object, label: str) -> datetime:
    if not isinstance(value, str):
        raise DocumentError(f"{label} must be an ISO-8601 timestamp.")
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise DocumentError(f"{label} is not a valid timestamp.") from exc


def sorted_selections(
    selections: Sequence[Iterable[int]],
) -> tuple[tuple[int, ...], ...]:
    """Freeze per-question selections into sorted tuples."""

    return tuple(tuple(sorted(selected)) for selected in selections)
