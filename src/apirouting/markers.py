from __future__ import annotations

from enum import Enum
from typing import Any, Callable, TypeVar

T = TypeVar("T")

MARKERS_ATTR = "__http_markers__"
FROM_BODY_ATTR = "__from_body__"
METADATA_ATTR = "__endpoint_metadata__"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"

    def __str__(self) -> str:
        return self.value


def _unwrap(target: Any) -> Any:
    if isinstance(target, (staticmethod, classmethod)):
        return target.__func__
    return target


def _own_attr(target: Any, attr: str) -> tuple:
    target = _unwrap(target)
    # Classes only see their own markers; subclasses do not inherit them.
    if isinstance(target, type):
        return tuple(vars(target).get(attr, ()))
    return tuple(getattr(target, attr, ()))


def http_method(method: HttpMethod | str) -> Callable[[T], T]:
    """
    Mark a class (class-level) or a function (method-level) as serving `method`.
    Markers stack: every application records one verb.
    """
    verb = HttpMethod(str(method).upper())

    def decorate(target: T) -> T:
        setattr(_unwrap(target), MARKERS_ATTR, _own_attr(target, MARKERS_ATTR) + (verb,))
        return target

    return decorate


http_get = http_method(HttpMethod.GET)
http_post = http_method(HttpMethod.POST)
http_put = http_method(HttpMethod.PUT)
http_delete = http_method(HttpMethod.DELETE)
http_patch = http_method(HttpMethod.PATCH)
http_options = http_method(HttpMethod.OPTIONS)
http_head = http_method(HttpMethod.HEAD)


def markers_of(target: Any) -> tuple[HttpMethod, ...]:
    return _own_attr(target, MARKERS_ATTR)


class FromBody:
    """Bind the annotated parameter from the JSON request body field of the same name."""

    def __repr__(self) -> str:
        return "FromBody()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FromBody)

    def __hash__(self) -> int:
        return hash(FromBody)


def from_body(func: T) -> T:
    # Legacy form: every parameter of the decorated handler is body-sourced.
    setattr(_unwrap(func), FROM_BODY_ATTR, True)
    return func


def has_function_body_marker(func: Any) -> bool:
    return bool(getattr(_unwrap(func), FROM_BODY_ATTR, False))


def endpoint_metadata(*items: Any) -> Callable[[T], T]:
    """Attach free-form items that are republished as endpoint metadata."""

    def decorate(target: T) -> T:
        setattr(_unwrap(target), METADATA_ATTR, _own_attr(target, METADATA_ATTR) + tuple(items))
        return target

    return decorate


def metadata_of(target: Any) -> tuple[Any, ...]:
    return _own_attr(target, METADATA_ATTR)
