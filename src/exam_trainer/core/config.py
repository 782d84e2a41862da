"""TOML and environment helpers behind ``exam.toml`` loading."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

__all__ = [
    "TomlConfigError",
    "env_bool",
    "env_string",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
]

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


class TomlConfigError(RuntimeError):
    """Raised when a config file cannot be read, parsed or validated."""


def load_toml(path: Path) -> dict[str, Any]:
    try:
        with Path(path).open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Invalid TOML in {path}: {exc}") from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Merge ``override`` into the defaults table ``base`` in place.

    Only keys already present in ``base`` are accepted, so a typo in
    ``exam.toml`` fails loudly instead of being ignored. Nested tables merge
    recursively; leaf values replace the default.
    """

    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        current = base[key]
        if not isinstance(current, MutableMapping):
            base[key] = value
        elif isinstance(value, Mapping):
            merge_defaults(current, value, path=f"{dotted}.")
        else:
            raise TomlConfigError(
                f"Expected table for '{dotted}', found {type(value).__name__}."
            )


def env_string(env: Mapping[str, str], name: str) -> Optional[str]:
    """Return the stripped value of ``name`` or ``None`` when unset or blank."""

    value = (env.get(name) or "").strip()
    return value or None


def env_bool(env: Mapping[str, str], name: str) -> Optional[bool]:
    raw = env_string(env, name)
    if raw is None:
        return None
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise TomlConfigError(f"{name} must be a boolean (true/false), got '{raw}'.")


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
) -> Path:
    """Write ``template`` to ``path`` with owner-only permissions."""

    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(template, encoding="utf-8")
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path
