from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional, get_type_hints

from apirouting.config import DEFAULT_CONFIG, RoutingConfig
from apirouting.discovery.scanner import public_functions
from apirouting.markers import HttpMethod, markers_of
from apirouting.results import is_result_type


@dataclass(frozen=True)
class ResolvedHandler:
    method: HttpMethod
    handler: Callable[..., Any]
    name: str
    class_level: bool
    is_static: bool = False


def _return_annotation(func: Callable[..., Any]) -> Any:
    try:
        hints = get_type_hints(func)
    except (NameError, TypeError):
        # unresolvable forward reference: the function cannot qualify
        return None
    return hints.get("return")


def _is_static(cls: type, name: str) -> bool:
    return isinstance(inspect.getattr_static(cls, name), staticmethod)


def _class_level_handler(cls: type, suffix: str) -> Optional[tuple[str, Callable[..., Any]]]:
    for name, func in public_functions(cls):
        if not name.endswith(suffix):
            continue
        if is_result_type(_return_annotation(func)):
            return name, func
    return None


def resolve_handler(cls: type, config: RoutingConfig = DEFAULT_CONFIG) -> Optional[ResolvedHandler]:
    """
    Resolve the (verb, handler) pair of a candidate type.

    1. exactly one class-level marker: the handler is the first public function
       named `*<suffix>` that returns a result type; none -> rejected
    2. otherwise exactly one public function with exactly one marker
    3. anything else is ambiguous and rejected (returns None)
    """
    class_markers = markers_of(cls)
    if len(class_markers) == 1:
        found = _class_level_handler(cls, config.handler_suffix)
        if found is None:
            return None
        name, func = found
        return ResolvedHandler(
            method=class_markers[0],
            handler=func,
            name=name,
            class_level=True,
            is_static=_is_static(cls, name),
        )

    marked = [
        (name, func, markers_of(func))
        for name, func in public_functions(cls)
        if len(markers_of(func)) == 1
    ]
    if len(marked) != 1:
        return None

    name, func, (verb,) = marked[0]
    return ResolvedHandler(
        method=verb,
        handler=func,
        name=name,
        class_level=False,
        is_static=_is_static(cls, name),
    )
