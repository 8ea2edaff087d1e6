from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    # Where namespaces live: <base_path>/<db_path>/<namespace>
    base_path: Path | None
    db_path: str

    # Defaults applied to every store created through a registry
    write_to_disk: bool
    write_delay: int
    pretty_print: bool

    def store_defaults(self) -> dict[str, Any]:
        return {
            "write_to_disk": self.write_to_disk,
            "write_delay": self.write_delay,
            "pretty_print": self.pretty_print,
        }


def get_settings(env_file: str | os.PathLike[str] | None = None) -> Settings:
    if env_file is not None:
        load_dotenv(env_file)

    raw_base = os.getenv("TRIVIALDB_BASE_PATH", "").strip()
    base_path = Path(raw_base).expanduser().resolve() if raw_base else None

    db_path = os.getenv("TRIVIALDB_DB_PATH", "db").strip() or "db"

    write_to_disk = _env_bool("TRIVIALDB_WRITE_TO_DISK", True)
    write_delay = _env_int("TRIVIALDB_WRITE_DELAY", 0)
    pretty_print = _env_bool("TRIVIALDB_PRETTY_PRINT", True)

    return Settings(
        base_path=base_path,
        db_path=db_path,
        write_to_disk=write_to_disk,
        write_delay=write_delay,
        pretty_print=pretty_print,
    )
