from __future__ import annotations

import collections.abc
import types
from typing import Any, TypeVar, Union, get_args, get_origin

from starlette.responses import Response

T = TypeVar("T")

RESULT_ATTR = "__api_result__"

_AWAITABLE_ORIGINS = (collections.abc.Awaitable, collections.abc.Coroutine)
_UNION_ORIGINS = (Union, types.UnionType)


class ApiResult:
    """Base for handler return types that declare themselves result-producing."""

    __api_result__ = True


def result_type(cls: T) -> T:
    """Declare an existing class result-producing without subclassing ApiResult."""
    setattr(cls, RESULT_ATTR, True)
    return cls


def unwrap_awaitable(tp: Any) -> Any:
    # Awaitable[X] / Coroutine[Any, Any, X] -> X
    origin = get_origin(tp)
    if origin in _AWAITABLE_ORIGINS:
        args = get_args(tp)
        return args[-1] if args else Any
    return tp


def _is_single_result(tp: Any) -> bool:
    if not isinstance(tp, type):
        return False
    if getattr(tp, RESULT_ATTR, False):
        return True
    return issubclass(tp, Response)


def is_result_type(tp: Any) -> bool:
    """
    True for a single result-producing class or a multi-variant union whose
    members are all result-producing.
    """
    tp = unwrap_awaitable(tp)
    if get_origin(tp) in _UNION_ORIGINS:
        members = get_args(tp)
        return bool(members) and all(_is_single_result(m) for m in members)
    return _is_single_result(tp)
