"""JSON file helpers shared across exam-trainer modules."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, List, Optional

__all__ = [
    "FileLock",
    "FileLockTimeout",
    "atomic_write_json",
    "iter_json_files",
    "read_json",
]

_LOCK_TIMEOUT_SECONDS = 5.0
_LOCK_POLL_SECONDS = 0.05

logger = logging.getLogger(__name__)


class FileLockTimeout(RuntimeError):
    """Raised when a lock file cannot be acquired in time."""


def read_json(path: Path) -> Any:
    """Return the decoded JSON document stored at ``path``.

    ``FileNotFoundError``, ``OSError`` and ``json.JSONDecodeError`` propagate;
    callers decide whether a missing or corrupt file is fatal.
    """

    with Path(path).open("r", encoding="utf-8-sig") as handle:
        return json.load(handle)


def atomic_write_json(path: Path, payload: Any, *, indent: int = 2) -> None:
    """Write ``payload`` to ``path`` through a temporary file and rename."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        json.dump(payload, handle, indent=indent, ensure_ascii=False)
        handle.flush()
        os.fsync(handle.fileno())
    except BaseException:
        handle.close()
        Path(handle.name).unlink(missing_ok=True)
        raise
    handle.close()
    os.replace(handle.name, path)


def iter_json_files(directory: Path) -> List[Path]:
    """Return ``*.json`` files directly under ``directory`` sorted by name."""

    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        (child for child in directory.glob("*.json") if child.is_file()),
        key=lambda item: item.name.lower(),
    )


class FileLock:
    """Simple filesystem lock using exclusive file creation.

    A lock file older than ``stale_after`` seconds is assumed to belong to a
    process that died while holding it and is removed before retrying.
    """

    def __init__(
        self,
        path: Path,
        *,
        timeout: float = _LOCK_TIMEOUT_SECONDS,
        stale_after: Optional[float] = None,
    ) -> None:
        self._path = Path(path)
        self._timeout = timeout
        self._stale_after = stale_after

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> "FileLock":
        self._path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self._timeout
        while True:
            try:
                fd = os.open(
                    self._path,
                    os.O_CREAT | os.O_EXCL | os.O_WRONLY,
                )
            except FileExistsError:
                if self._break_stale():
                    continue
                if time.monotonic() > deadline:
                    raise FileLockTimeout(
                        f"Timed out waiting for lock: {self._path}"
                    )
                time.sleep(_LOCK_POLL_SECONDS)
                continue
            os.write(fd, str(os.getpid()).encode("ascii"))
            os.close(fd)
            return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self._path.unlink(missing_ok=True)

    def _break_stale(self) -> bool:
        if self._stale_after is None:
            return False
        try:
            age = time.time() - self._path.stat().st_mtime
        except FileNotFoundError:
            return True
        if age < self._stale_after:
            return False
        logger.warning(
            "Removing stale lock file",
            extra={"lock": self._path, "age_seconds": round(age, 1)},
        )
        self._path.unlink(missing_ok=True)
        return True
