from __future__ import annotations

import inspect
import os
import re
import sys
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from apirouting.config import DEFAULT_CONFIG, RoutingConfig
from apirouting.discovery.ignore import should_ignore_dir
from apirouting.errors import (
    AmbiguousSourceFileError,
    ProjectRootNotFoundError,
    SourceFileNotFoundError,
)

_MULTI_SLASH = re.compile(r"/{2,}")
_API_PREFIX = re.compile(r"^api(/|$)", re.IGNORECASE)


def find_project_root(start: Path, manifest_names: Iterable[str]) -> Path:
    """Nearest directory at or above `start` holding one of the build manifests."""
    manifests = tuple(manifest_names)
    start = start.resolve()
    directory = start if start.is_dir() else start.parent
    for candidate in (directory, *directory.parents):
        if any((candidate / m).is_file() for m in manifests):
            return candidate
    raise ProjectRootNotFoundError(start, manifests)


def _qualname(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def _search_source_files(cls: type, root: Path, ignores: Iterable[str]) -> list[Path]:
    stem = cls.__module__.rsplit(".", 1)[-1]
    ignores = set(ignores)
    out: list[Path] = []
    for dirpath, dirs, files in os.walk(root):
        dirs[:] = sorted(d for d in dirs if not should_ignore_dir(Path(dirpath) / d, ignores))
        if f"{stem}.py" in files:
            out.append(Path(dirpath) / f"{stem}.py")
    return out


def locate_source_file(cls: type, config: RoutingConfig = DEFAULT_CONFIG) -> Path:
    """
    Source file declaring `cls`. Falls back to searching the project for
    `<module stem>.py` when the interpreter has no file for the class; several
    matches are disambiguated by the dotted module path.
    """
    try:
        found = inspect.getsourcefile(cls)
    except (TypeError, OSError):
        found = None
    if found and Path(found).is_file():
        return Path(found).resolve()

    if config.project_root is not None:
        root = config.project_root
    else:
        module = sys.modules.get(cls.__module__)
        module_file = getattr(module, "__file__", None)
        root = find_project_root(Path(module_file) if module_file else Path.cwd(), config.manifest_names)

    matches = _search_source_files(cls, root, config.ignore_dirs)
    if len(matches) == 1:
        return matches[0].resolve()
    if not matches:
        raise SourceFileNotFoundError(_qualname(cls))

    fragment = cls.__module__.replace(".", "/")
    narrowed = [m for m in matches if m.with_suffix("").as_posix().endswith(fragment)]
    if len(narrowed) == 1:
        return narrowed[0].resolve()
    raise AmbiguousSourceFileError(_qualname(cls), narrowed or matches)


def normalize_route(route: str) -> str:
    p = (route or "").strip().replace("\\", "/")
    if not p.startswith("/"):
        p = "/" + p
    p = _MULTI_SLASH.sub("/", p)
    if p != "/" and p.endswith("/"):
        p = p[:-1]
    return p.lower()


def route_from_relative_path(
    relative_path: str,
    include_file_name: bool,
    api_root: str = "api",
) -> str:
    """
    api/orders/create.py -> /api/orders/create (file name included)
                         -> /api/orders        (file name omitted)
    """
    posix = PurePosixPath((relative_path or "").replace("\\", "/"))
    directory = "" if str(posix.parent) == "." else str(posix.parent)
    directory = _API_PREFIX.sub("", directory, count=1)

    parts = ["", api_root.strip("/"), directory]
    if include_file_name:
        parts.append(posix.stem)
    return normalize_route("/".join(parts))


def derive_route(cls: type, class_level: bool, config: RoutingConfig = DEFAULT_CONFIG) -> tuple[str, Path]:
    """Return (route, source_file) for a resolved handler type."""
    source = locate_source_file(cls, config)
    root = config.project_root or find_project_root(source, config.manifest_names)
    relative = os.path.relpath(str(source), str(Path(root).resolve()))
    route = route_from_relative_path(relative, include_file_name=not class_level, api_root=config.api_root)
    return route, source


def relative_source(source: Optional[Path], config: RoutingConfig = DEFAULT_CONFIG) -> str:
    if source is None:
        return ""
    try:
        root = config.project_root or find_project_root(source, config.manifest_names)
    except ProjectRootNotFoundError:
        return source.as_posix()
    return Path(os.path.relpath(str(source), str(Path(root).resolve()))).as_posix()
