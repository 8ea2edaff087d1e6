from __future__ import annotations

import sys
from pathlib import Path


def project_root() -> Path:
    """
    Directory of the running application: the folder holding the `__main__`
    script, or the current working directory when there is none (REPL, -c).
    """
    main = sys.modules.get("__main__")
    main_file = getattr(main, "__file__", None)
    if main_file:
        return Path(main_file).resolve().parent
    return Path.cwd().resolve()


def db_file(root_path: Path, name: str) -> Path:
    return root_path / f"{name}.json"
