"""Builders for questions, question lists and test definitions."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

from exam_trainer.engine.models import Answer, Question


def make_question(
    statement: str,
    answers: Sequence[tuple[str, bool]] = (("yes", True), ("no", False)),
) -> Question:
    return Question(
        statement=statement,
        answers=tuple(Answer(text, correct) for text, correct in answers),
    )


def numbered_questions(prefix: str, count: int) -> list[Question]:
    return [
        make_question(
            f"{prefix} question {number}",
            ((f"{prefix}-{number}-a", True), (f"{prefix}-{number}-b", False)),
        )
        for number in range(1, count + 1)
    ]


@dataclass
class ExamWorkspace:
    """Writes documents into the standard workspace directories."""

    home: Path

    @property
    def tests_dir(self) -> Path:
        return self.home / "Tests"

    @property
    def lists_dir(self) -> Path:
        return self.home / "QuestionLists"

    @property
    def history_dir(self) -> Path:
        return self.home / "History"

    def write_list(self, name: str, questions: Iterable[Question]) -> Path:
        path = self.lists_dir / f"{name}.json"
        self._dump(path, [question.to_dict() for question in questions])
        return path

    def write_test(
        self,
        name: str,
        sources: Sequence[tuple[str, int]],
        *,
        max_time_seconds: int = 600,
        required: int = 1,
        display_name: str | None = None,
    ) -> Path:
        payload: dict[str, Any] = {
            "max_time_seconds": max_time_seconds,
            "required_correct_to_pass": required,
            "question_lists": [
                {"path": f"QuestionLists/{source}.json", "count": count}
                for source, count in sources
            ],
        }
        if display_name is not None:
            payload["name"] = display_name
        path = self.tests_dir / f"{name}.json"
        self._dump(path, payload)
        return path

    @staticmethod
    def _dump(path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
