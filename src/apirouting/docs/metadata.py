from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable

from apirouting.binding.convert import is_list_type, is_string_list
from apirouting.domain.models import BindingSource, EndpointDescriptor, ParameterSpec
from apirouting.markers import FromBody, has_function_body_marker, markers_of, metadata_of


def schema_type(tp: Any) -> str:
    """Fixed primitive mapping used for documentation entries."""
    if tp is str:
        return "string"
    if tp is bool:
        return "boolean"
    if isinstance(tp, type) and issubclass(tp, int):
        return "integer"
    if isinstance(tp, type) and issubclass(tp, (float, Decimal)):
        return "number"
    if is_list_type(tp):
        return "array"
    return "object"


def _schema(tp: Any) -> dict[str, Any]:
    out: dict[str, Any] = {"type": schema_type(tp)}
    if out["type"] == "array":
        out["items"] = {"type": "string"} if is_string_list(tp) else {}
    return out


def collect_endpoint_metadata(
    endpoint_type: type,
    handler: Callable[..., Any],
    parameters: Iterable[ParameterSpec],
) -> tuple[Any, ...]:
    """
    Every marker and declared annotation of the type, the handler and its
    parameters, in that order.
    """
    items: list[Any] = []
    items.extend(markers_of(endpoint_type))
    items.extend(metadata_of(endpoint_type))
    items.extend(markers_of(handler))
    if has_function_body_marker(handler):
        items.append(FromBody())
    items.extend(metadata_of(handler))
    for p in parameters:
        items.extend(p.metadata)
    return tuple(items)


METADATA_KEY = "x-endpoint-metadata"


def metadata_entries(items: Iterable[Any]) -> list[Any]:
    """JSON-safe form of metadata items; anything else is published as its str()."""
    out: list[Any] = []
    for item in items:
        if isinstance(item, Enum):
            item = item.value
        if item is None or isinstance(item, (str, int, float, bool)):
            out.append(item)
        else:
            out.append(str(item))
    return out


def _required(p: ParameterSpec) -> bool:
    return not (p.has_default or p.optional)


def build_openapi_extra(descriptor: EndpointDescriptor) -> dict[str, Any]:
    """
    OpenAPI operation fragment: query entries for parameters bound from the
    query string or the container, a JSON request body for body-sourced ones,
    and the collected endpoint metadata under `x-endpoint-metadata`.
    """
    parameters: list[dict[str, Any]] = []
    properties: dict[str, Any] = {}
    required: list[str] = []

    for p in descriptor.parameters:
        if p.source is BindingSource.REQUEST:
            continue
        if p.body_sourced:
            properties[p.name] = _schema(p.annotation)
            if _required(p):
                required.append(p.name)
            continue
        parameters.append(
            {
                "name": p.name,
                "in": "query",
                "required": _required(p),
                "schema": _schema(p.annotation),
            }
        )

    extra: dict[str, Any] = {}
    if parameters:
        extra["parameters"] = parameters
    if properties:
        body_schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            body_schema["required"] = required
        extra["requestBody"] = {
            "required": bool(required),
            "content": {"application/json": {"schema": body_schema}},
        }
    if descriptor.metadata:
        extra[METADATA_KEY] = metadata_entries(descriptor.metadata)
    return extra
