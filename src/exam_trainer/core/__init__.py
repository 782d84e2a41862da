"""Core shared helpers for exam-trainer commands."""

from __future__ import annotations

from .config import (
    TomlConfigError,
    env_bool,
    env_string,
    load_toml,
    merge_defaults,
    write_toml_template,
)
from .files import (
    FileLock,
    FileLockTimeout,
    atomic_write_json,
    iter_json_files,
    read_json,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    describe_layout,
    ensure_workspace,
)

__all__ = [
    "TomlConfigError",
    "env_bool",
    "env_string",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
    "FileLock",
    "FileLockTimeout",
    "atomic_write_json",
    "iter_json_files",
    "read_json",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "describe_layout",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
