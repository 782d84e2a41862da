"""Configuration loader for exam-trainer commands."""

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from .core import config as core_config
from .core import workspace as workspace_mod

CONFIG_FILENAME = "exam.toml"
CONFIG_ENV = "EXAM_TRAINER_CONFIG"
ENV_PREFIX = "EXAM_TRAINER_"

_DEFAULT_LOG_LEVEL = "INFO"
_DIRECTORY_KEYS = {
    "tests_dir": "tests",
    "question_lists_dir": "question_lists",
    "history_dir": "history",
}


class ExamConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class ExamConfig:
    """Fully resolved configuration for one command run."""

    tests_dir: Path
    question_lists_dir: Path
    history_dir: Path
    show_review: bool
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of env and file options."""

    log_level: Optional[str] = None
    show_review: Optional[bool] = None


@dataclass(frozen=True)
class LoadResult:
    config: ExamConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise ExamConfigError(str(exc)) from exc

    requested = _resolve_config_path(config_path, env_map, layout)
    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested.exists():
        try:
            core_config.merge_defaults(
                table, core_config.load_toml(requested)
            )
        except core_config.TomlConfigError as exc:
            raise ExamConfigError(str(exc)) from exc
        loaded_path = requested
    elif config_path is not None or _env_string(env_map, "CONFIG"):
        raise ExamConfigError(f"Config file not found: {requested}")

    directories = {
        key: _resolve_dir(
            _pick_first(
                _env_string(env_map, key.upper()), table["paths"][key]
            ),
            layout=layout,
            default_key=default_key,
            field=f"paths.{key}",
        )
        for key, default_key in _DIRECTORY_KEYS.items()
    }

    show_review = _pick_first(
        overrides.show_review,
        _env_bool(env_map, "SHOW_REVIEW"),
        table["session"]["show_review"],
    )
    if not isinstance(show_review, bool):
        raise ExamConfigError("session.show_review must be true or false.")

    log_level = _pick_first(
        overrides.log_level,
        _env_string(env_map, "LOG_LEVEL"),
        table["logging"]["level"],
    )
    if not isinstance(log_level, str) or not log_level.strip():
        raise ExamConfigError("logging.level must be a non-empty string.")

    config = ExamConfig(
        tests_dir=directories["tests_dir"],
        question_lists_dir=directories["question_lists_dir"],
        history_dir=directories["history_dir"],
        show_review=show_review,
        log_level=log_level.strip().upper(),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def template_text() -> str:
    """Return the packaged ``exam.toml`` template."""

    resource = resources.files("exam_trainer").joinpath("exam.toml")
    return resource.read_text(encoding="utf-8")


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    try:
        return core_config.write_toml_template(
            path, template=template_text(), overwrite=overwrite
        )
    except core_config.TomlConfigError as exc:
        raise ExamConfigError(str(exc)) from exc


def default_config_path(layout: workspace_mod.WorkspaceLayout) -> Path:
    return layout.path_for("config") / CONFIG_FILENAME


def _default_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    return {
        "paths": {key: None for key in _DIRECTORY_KEYS},
        "session": {"show_review": True},
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    layout: workspace_mod.WorkspaceLayout,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = _env_string(env_map, "CONFIG")
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_config_path(layout)


def _resolve_dir(
    value: object,
    *,
    layout: workspace_mod.WorkspaceLayout,
    default_key: str,
    field: str,
) -> Path:
    if value is None:
        return layout.path_for(default_key)
    if not isinstance(value, str):
        raise ExamConfigError(f"{field} must be a string when provided.")
    raw = value.strip()
    if not raw:
        return layout.path_for(default_key)
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        candidate = layout.home / candidate
    return candidate.resolve()


def _env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    return core_config.env_string(env_map, f"{ENV_PREFIX}{key}")


def _env_bool(env_map: Mapping[str, str], key: str) -> Optional[bool]:
    try:
        return core_config.env_bool(env_map, f"{ENV_PREFIX}{key}")
    except core_config.TomlConfigError as exc:
        raise ExamConfigError(str(exc)) from exc


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
