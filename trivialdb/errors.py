from __future__ import annotations

from pathlib import Path
from typing import Any


class TrivialDBError(Exception):
    """Base class for every error raised by trivialdb."""


class DocumentNotFound(TrivialDBError):
    def __init__(self, key: Any):
        super().__init__(f"Document {key!r} not found.")
        self.key = key


class WriteFailure(TrivialDBError):
    """
    Writing a store to disk failed.

    `cause` is the underlying exception (also chained as `__cause__`).
    """

    def __init__(self, message: str, path: Path | str, cause: BaseException | None = None):
        super().__init__(f"Failed to write database {str(path)!r}: {message}")
        self.path = Path(path)
        self.cause = cause


class LoadFailure(TrivialDBError):
    def __init__(self, message: str, path: Path | str, cause: BaseException | None = None):
        super().__init__(message)
        self.path = Path(path)
        self.cause = cause


class DatabaseFileMissing(LoadFailure):
    """The backing JSON file does not exist (ENOENT)."""

    def __init__(self, path: Path | str, cause: BaseException | None = None):
        super().__init__(f"Failed to load json file ({str(path)!r}) from disk.", path, cause)


class ParseFailure(LoadFailure):
    def __init__(self, path: Path | str, cause: BaseException | None = None):
        super().__init__(f"Failed to parse on disk json file ({str(path)!r}).", path, cause)


class UnsupportedOperation(TrivialDBError):
    pass


class ValidationError(TrivialDBError):
    def __init__(self, field: str, message: str):
        super().__init__(f"Key {field!r}: {message}")
        self.field = field
        self.message = message
