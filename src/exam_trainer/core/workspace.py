"""Location and bootstrap of the exam-trainer data directory.

Everything the trainer reads or writes lives under one root:

- ``Tests/`` holds hand-written test definitions,
- ``QuestionLists/`` holds the question pools they reference,
- ``History/`` holds one attempt log per test plus ``QuestionStats.json``,
- ``config/`` and ``logs/`` hold ``exam.toml`` and the JSON-lines logs.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

WORKSPACE_ENV = "EXAM_TRAINER_DATA_HOME"
DEFAULT_WORKSPACE = Path.home() / ".exam-trainer-data"

DIRECTORIES: Mapping[str, str] = MappingProxyType(
    {
        "config": "config",
        "logs": "logs",
        "tests": "Tests",
        "question_lists": "QuestionLists",
        "history": "History",
    }
)


class WorkspaceError(RuntimeError):
    """Raised when the workspace root or one of its folders is unusable."""


@dataclass(frozen=True)
class WorkspaceLayout:
    home: Path
    directories: Mapping[str, Path]
    created: Mapping[str, bool] = field(default_factory=dict)

    def path_for(self, key: str) -> Path:
        if key not in self.directories:
            raise KeyError(f"Unknown workspace directory '{key}'.")
        return self.directories[key]

    def items(self) -> tuple[tuple[str, Path], ...]:
        return tuple(self.directories.items())


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Resolve the workspace root and, unless ``create`` is false, build it.

    An explicit ``path`` wins over ``EXAM_TRAINER_DATA_HOME``. When neither is
    given and the default home directory is not writable, a folder under the
    system temp directory is used instead.
    """

    root, explicit = _resolve_root(os.environ if env is None else env, path)
    if not create:
        return _describe(root)

    failure: Exception | None = None
    for candidate in _candidates(root, explicit):
        try:
            return _build(candidate)
        except PermissionError as exc:
            failure = exc
    raise WorkspaceError(f"Unable to prepare workspace at {root}") from failure


def describe_layout(
    *, env: Mapping[str, str] | None = None, path: Path | None = None
) -> Mapping[str, Path]:
    """Return ``home`` plus every workspace folder without touching disk."""

    layout = ensure_workspace(env=env, path=path, create=False)
    return MappingProxyType({"home": layout.home, **layout.directories})


def _resolve_root(
    env: Mapping[str, str], override: Path | None
) -> tuple[Path, bool]:
    if override is not None:
        return override.expanduser().resolve(), True
    configured = (env.get(WORKSPACE_ENV) or "").strip()
    if configured:
        return Path(configured).expanduser().resolve(), True
    return DEFAULT_WORKSPACE.expanduser().resolve(), False


def _candidates(root: Path, explicit: bool) -> Iterator[Path]:
    yield root
    if not explicit:
        fallback = _fallback_base()
        if fallback != root:
            yield fallback


def _fallback_base() -> Path:
    return Path(tempfile.gettempdir()) / "exam-trainer-data"


def _folders(root: Path) -> dict[str, Path]:
    return {key: root / name for key, name in DIRECTORIES.items()}


def _describe(root: Path) -> WorkspaceLayout:
    _check_not_file(root, "workspace root")
    folders = _folders(root)
    for key, folder in folders.items():
        _check_not_file(folder, f"'{key}' directory")
    created = {key: False for key in ("home", *folders)}
    return WorkspaceLayout(
        home=root,
        directories=MappingProxyType(folders),
        created=MappingProxyType(created),
    )


def _build(root: Path) -> WorkspaceLayout:
    _check_not_file(root, "workspace root")
    created = {"home": _ensure_dir(root)}
    folders = _folders(root)
    for key, folder in folders.items():
        created[key] = _ensure_dir(folder)
    return WorkspaceLayout(
        home=root,
        directories=MappingProxyType(folders),
        created=MappingProxyType(created),
    )


def _check_not_file(path: Path, label: str) -> None:
    if path.exists() and not path.is_dir():
        raise WorkspaceError(f"Configured {label} is not a directory: {path}")


def _ensure_dir(path: Path) -> bool:
    """Create ``path`` (mode 0700) and report whether it was new."""

    existed = path.is_dir()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError as exc:
        raise WorkspaceError(f"Configured path is not a directory: {path}") from exc
    try:
        path.chmod(0o700)
    except (PermissionError, NotImplementedError):
        pass
    return not existed
