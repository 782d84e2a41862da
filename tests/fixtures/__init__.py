"""Shared testing fixtures for the exam_trainer test suite."""

from .exams import ExamWorkspace, make_question, numbered_questions  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "ExamWorkspace",
    "WorkspaceBuilder",
    "build_tree",
    "make_question",
    "numbered_questions",
]
