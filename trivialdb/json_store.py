from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from .errors import DatabaseFileMissing, LoadFailure, ParseFailure, WriteFailure

logger = logging.getLogger(__name__)

# One lock per resolved file path: two stores pointed at the same file never interleave writes.
_write_locks: dict[str, threading.Lock] = {}
_write_locks_guard = threading.Lock()


def _write_lock(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _write_locks_guard:
        return _write_locks.setdefault(key, threading.Lock())


def dumps(payload: Any, *, pretty: bool = True) -> str:
    """
    Serialize a database payload.

    Pretty mode uses a 4 space indent; compact mode has no whitespace at all.
    """
    if pretty:
        return json.dumps(payload, indent=4, ensure_ascii=False)
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def read_json(path: Path) -> Any | None:
    """
    Read and parse the JSON file at `path`.

    Returns None for an empty file. Raises `DatabaseFileMissing` when the file does
    not exist, `ParseFailure` for malformed JSON and `LoadFailure` for any other
    I/O error.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DatabaseFileMissing(path, exc) from exc
    except UnicodeDecodeError as exc:
        raise ParseFailure(path, exc) from exc
    except OSError as exc:
        raise LoadFailure(f"Failed to read json file ({str(path)!r}): {exc}", path, exc) from exc

    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ParseFailure(path, exc) from exc


def ensure_parent_dir(path: Path) -> None:
    parent = path.parent
    if parent.exists() and not parent.is_dir():
        raise WriteFailure(f"Root path {str(parent)!r} is not a directory!", path)
    # Missing directories are not an error; create them.
    parent.mkdir(parents=True, exist_ok=True)


def atomic_write_json(path: Path, text: str) -> None:
    """
    Atomically write an already serialized JSON document by writing to a temp file
    then replacing. Any OS level failure is reported as `WriteFailure`.
    """
    with _write_lock(path):
        try:
            ensure_parent_dir(path)
            tmp_path = path.with_suffix(path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as f:
                f.write(text)
            tmp_path.replace(path)
        except OSError as exc:
            raise WriteFailure(str(exc), path, exc) from exc
    logger.debug("wrote %d bytes to %s", len(text), path)
