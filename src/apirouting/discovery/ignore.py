from __future__ import annotations

from pathlib import Path
from typing import Iterable

DEFAULT_IGNORES = {
    ".git",
    ".venv",
    "venv",
    "__pycache__",
    "node_modules",
    "dist",
    "build",
    ".mypy_cache",
    ".ruff_cache",
    ".pytest_cache",
    ".tox",
}


def should_ignore_dir(dir_path: Path, ignores: Iterable[str] = DEFAULT_IGNORES) -> bool:
    return dir_path.name in set(ignores)


def should_ignore_module(module_name: str, ignores: Iterable[str] = DEFAULT_IGNORES) -> bool:
    # "pkg.build.tool" lives under an ignored directory called "build"
    names = set(ignores)
    return any(part in names for part in module_name.split("."))
