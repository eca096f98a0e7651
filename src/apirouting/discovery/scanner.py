from __future__ import annotations

import importlib
import inspect
import pkgutil
from types import ModuleType
from typing import Iterable, Iterator, Union

from apirouting.discovery.ignore import DEFAULT_IGNORES, should_ignore_module
from apirouting.markers import markers_of

ModuleTarget = Union[str, ModuleType]


def _load(target: ModuleTarget) -> ModuleType:
    if isinstance(target, ModuleType):
        return target
    return importlib.import_module(target)


def iter_modules(*targets: ModuleTarget, ignores: Iterable[str] = DEFAULT_IGNORES) -> list[ModuleType]:
    """
    Import the given modules and, for packages, every submodule below them.
    Deterministic: sorted by module name, each module once.
    """
    ignores = set(ignores)
    found: dict[str, ModuleType] = {}
    for target in targets:
        module = _load(target)
        found.setdefault(module.__name__, module)

        pkg_path = getattr(module, "__path__", None)
        if pkg_path is None:
            continue
        for info in pkgutil.walk_packages(pkg_path, prefix=module.__name__ + "."):
            if should_ignore_module(info.name, ignores):
                continue
            found.setdefault(info.name, importlib.import_module(info.name))

    return [found[name] for name in sorted(found)]


def iter_module_types(*targets: ModuleTarget, ignores: Iterable[str] = DEFAULT_IGNORES) -> Iterator[type]:
    """Yield the classes defined (not merely imported) in the target modules."""
    for module in iter_modules(*targets, ignores=ignores):
        for obj in list(vars(module).values()):
            if inspect.isclass(obj) and obj.__module__ == module.__name__:
                yield obj


def public_functions(cls: type) -> Iterator[tuple[str, object]]:
    """
    (name, function) pairs for the public functions of `cls`, most-derived
    class first, definition order within a class.
    """
    seen: set[str] = set()
    for klass in cls.__mro__:
        if klass is object:
            continue
        for name, raw in vars(klass).items():
            if name.startswith("_") or name in seen:
                continue
            func = raw.__func__ if isinstance(raw, (staticmethod, classmethod)) else raw
            if not inspect.isfunction(func):
                continue
            seen.add(name)
            yield name, func


def is_endpoint_candidate(cls: object) -> bool:
    if not inspect.isclass(cls) or inspect.isabstract(cls):
        return False
    if markers_of(cls):
        return True
    return any(markers_of(func) for _, func in public_functions(cls))


def find_endpoint_types(types: Iterable[object]) -> list[type]:
    """Filter a type universe down to the candidate handler types."""
    out: list[type] = []
    seen: set[int] = set()
    for t in types:
        if id(t) in seen:
            continue
        seen.add(id(t))
        if is_endpoint_candidate(t):
            out.append(t)  # type: ignore[arg-type]
    return out
