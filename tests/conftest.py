from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

ROOT = TESTS_DIR.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from fixtures import WorkspaceBuilder  # noqa: E402
from fixtures.exams import ExamWorkspace  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def exam_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ExamWorkspace:
    """An isolated exam-trainer workspace selected through the env var."""

    home = tmp_path / "exam-home"
    monkeypatch.setenv("EXAM_TRAINER_DATA_HOME", str(home))
    for key in (
        "CONFIG",
        "LOG_LEVEL",
        "SHOW_REVIEW",
        "TESTS_DIR",
        "QUESTION_LISTS_DIR",
        "HISTORY_DIR",
    ):
        monkeypatch.delenv(f"EXAM_TRAINER_{key}", raising=False)
    return ExamWorkspace(home)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
