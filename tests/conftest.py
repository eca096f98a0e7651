from __future__ import annotations

import importlib
import sys
import textwrap
from pathlib import Path

import pytest


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


class Project:
    """A throwaway project tree (with a pyproject.toml) importable from sys.path."""

    def __init__(self, root: Path):
        self.root = root

    def write(self, rel_path: str, source: str) -> Path:
        target = self.root / rel_path
        # make every directory between the root and the file a package
        for parent in target.relative_to(self.root).parents:
            if str(parent) == ".":
                continue
            init = self.root / parent / "__init__.py"
            if not init.exists():
                write(init, "")
        write(target, source)
        return target

    def load(self, dotted: str):
        importlib.invalidate_caches()
        return importlib.import_module(dotted)


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    root = tmp_path / "proj"
    root.mkdir()
    write(root / "pyproject.toml", '[project]\nname = "demo"\nversion = "0.0.1"\n')
    monkeypatch.syspath_prepend(str(root))

    before = set(sys.modules)
    yield Project(root)

    for name in set(sys.modules) - before:
        module = sys.modules.get(name)
        module_file = getattr(module, "__file__", None) or ""
        if module_file.startswith(str(root)):
            del sys.modules[name]
