from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the repository root (parent of ./tests) is importable during pytest collection,
# even when the package has not been installed.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def sandbox_project(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Redirect the application root to a temp directory so tests never write next to
    the test runner.
    """
    import trivialdb.paths as paths

    def _project_root() -> Path:
        return tmp_path

    monkeypatch.setattr(paths, "project_root", _project_root)
    for name in (
        "TRIVIALDB_BASE_PATH",
        "TRIVIALDB_DB_PATH",
        "TRIVIALDB_WRITE_TO_DISK",
        "TRIVIALDB_WRITE_DELAY",
        "TRIVIALDB_PRETTY_PRINT",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def db_dir(tmp_path: Path) -> Path:
    p = tmp_path / "db"
    p.mkdir()
    return p
