"""Atomic JSON document storage shared by the cache and progress stores."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from commit_trail.domain.errors import CacheCorrupt


def read_json(path: Path) -> dict[str, Any] | None:
    """Return the decoded document, or None if the file does not exist."""
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CacheCorrupt(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise CacheCorrupt(str(path), "top-level value is not an object")
    return data


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write ``data`` with sorted keys via temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.stem}_", suffix=".tmp")
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def parse_timestamp(value: Any, path: Path) -> datetime:
    if not isinstance(value, str):
        raise CacheCorrupt(str(path), f"bad timestamp {value!r}")
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise CacheCorrupt(str(path), f"bad timestamp {value!r}") from e
