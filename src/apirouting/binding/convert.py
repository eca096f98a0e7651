from __future__ import annotations

import collections.abc
import json
import types
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, List, Sequence, Union, get_args, get_origin

from pydantic import TypeAdapter

_NONE = type(None)
_UNION_ORIGINS = (Union, types.UnionType)
_LIST_ORIGINS = (list, List, tuple, set, frozenset, collections.abc.Sequence, collections.abc.Iterable)
_SCALAR_TYPES = (int, float, Decimal)

_TYPE_ADAPTER_CACHE: dict[Any, TypeAdapter] = {}


class ConversionError(ValueError):
    """A raw request value could not be converted to the declared type."""


def split_annotated(tp: Any) -> tuple[Any, tuple[Any, ...]]:
    # Annotated[str, FromBody()] -> (str, (FromBody(),))
    if get_origin(tp) is Annotated:
        base, *extras = get_args(tp)
        return base, tuple(extras)
    return tp, ()


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    # Optional[X] / X | None -> (X, True); other unions are left alone
    if get_origin(tp) in _UNION_ORIGINS:
        args = [a for a in get_args(tp) if a is not _NONE]
        if len(args) == 1 and len(get_args(tp)) == 2:
            return args[0], True
    return tp, False


def is_list_type(tp: Any) -> bool:
    if tp in (list, tuple, set, frozenset):
        return True
    return get_origin(tp) in _LIST_ORIGINS


def is_string_list(tp: Any) -> bool:
    if tp is list:
        return True
    if get_origin(tp) in (list, List, collections.abc.Sequence):
        args = get_args(tp)
        return not args or args[0] is str
    return False


def is_query_type(tp: Any) -> bool:
    return tp is str or tp is bool or tp in _SCALAR_TYPES or is_string_list(tp)


def parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
    raise ConversionError(f"not a boolean literal: {raw!r}")


def parse_scalar(raw: str, tp: Any) -> Any:
    try:
        if tp is int:
            return int(raw.strip())
        if tp is float:
            return float(raw.strip())
        return Decimal(raw.strip())
    except (ValueError, InvalidOperation) as exc:
        raise ConversionError(f"not a valid {tp.__name__}: {raw!r}") from exc


def empty_value(tp: Any, optional: bool = False) -> Any:
    """The value bound when nothing was supplied and no default is declared."""
    if optional:
        return None
    if tp is bool:
        return False
    if is_list_type(tp):
        return []
    return None


def _raw_text(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _adapter(tp: Any) -> TypeAdapter:
    try:
        return _TYPE_ADAPTER_CACHE[tp]
    except (KeyError, TypeError):
        pass
    adapter = TypeAdapter(tp)
    try:
        _TYPE_ADAPTER_CACHE[tp] = adapter
    except TypeError:
        # unhashable annotation; build it again next time
        pass
    return adapter


def convert_json_value(value: Any, tp: Any) -> Any:
    """
    Convert a raw JSON field to `tp`:
      - str: strings pass through, other JSON values become their JSON text
      - bool: JSON booleans or "true"/"false" literals
      - list of str: each item as a string
      - anything else: pydantic validation
    """
    if value is None:
        raise ConversionError("null value")
    if tp is Any:
        return value
    if tp is str:
        return _raw_text(value)
    if tp is bool:
        return parse_bool(value)
    if is_string_list(tp):
        if not isinstance(value, list):
            raise ConversionError(f"expected an array, got {type(value).__name__}")
        return [_raw_text(v) for v in value]
    try:
        return _adapter(tp).validate_python(value)
    except Exception as exc:  # noqa: BLE001
        raise ConversionError(str(exc)) from exc


def convert_query_value(values: Sequence[str], tp: Any) -> Any:
    """Convert the query values of one key; `values` is never empty."""
    if tp is str:
        return values[0]
    if tp is bool:
        return parse_bool(values[0])
    if is_string_list(tp):
        return list(values)
    return parse_scalar(values[0], tp)
