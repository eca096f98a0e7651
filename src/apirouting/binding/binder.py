from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Protocol, get_type_hints

from starlette.requests import HTTPConnection, Request

from apirouting.binding.body import body_applies, get_body_fields
from apirouting.binding.convert import (
    ConversionError,
    convert_json_value,
    convert_query_value,
    empty_value,
    is_query_type,
    split_annotated,
    unwrap_optional,
)
from apirouting.config import DEFAULT_CONFIG, RoutingConfig
from apirouting.domain.models import BindingSource, EndpointDescriptor, MISSING, ParameterSpec
from apirouting.markers import FromBody, has_function_body_marker

logger = logging.getLogger(__name__)

REQUEST_TYPES: tuple[type, ...] = (Request, HTTPConnection)

_SKIPPED_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


class Resolver(Protocol):
    def resolve(self, service_type: Any) -> Any: ...


def is_request_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, REQUEST_TYPES)


def _hints(func: Callable[..., Any]) -> dict[str, Any]:
    try:
        return get_type_hints(func, include_extras=True)
    except (NameError, TypeError):
        return dict(getattr(func, "__annotations__", {}))


def _is_body_marker(item: Any) -> bool:
    return item is FromBody or isinstance(item, FromBody)


def build_parameter_specs(handler: Callable[..., Any], is_static: bool = False) -> tuple[ParameterSpec, ...]:
    """Parameter specs of a handler function, `self`/`cls` excluded."""
    params = list(inspect.signature(handler).parameters.values())
    if not is_static and params:
        params = params[1:]

    hints = _hints(handler)
    legacy_body = has_function_body_marker(handler)

    specs: list[ParameterSpec] = []
    for p in params:
        if p.kind in _SKIPPED_KINDS:
            continue
        annotation = hints.get(p.name, Any)
        base, extras = split_annotated(annotation)
        base, optional = unwrap_optional(base)
        body = legacy_body or any(_is_body_marker(x) for x in extras)

        if is_request_type(base):
            source = BindingSource.REQUEST
        elif body:
            source = BindingSource.BODY
        elif is_query_type(base):
            source = BindingSource.QUERY
        else:
            source = BindingSource.SERVICE

        specs.append(
            ParameterSpec(
                name=p.name,
                annotation=base,
                body_sourced=body,
                default=MISSING if p.default is inspect.Parameter.empty else p.default,
                source=source,
                metadata=extras,
                optional=optional,
            )
        )
    return tuple(specs)


def _fallback(spec: ParameterSpec) -> Any:
    if spec.has_default:
        return spec.default
    if spec.annotation is bool:
        # Optional[bool] too: an unusable boolean reads as false
        return False
    return empty_value(spec.annotation, spec.optional)


def bind_query(spec: ParameterSpec, request: Request) -> Any:
    values = request.query_params.getlist(spec.name)
    if not values:
        return _fallback(spec)
    try:
        return convert_query_value(values, spec.annotation)
    except ConversionError:
        logger.debug("Query value for %r is not a valid %s", spec.name, spec.annotation)
        return _fallback(spec)


async def bind_body(spec: ParameterSpec, request: Request) -> Any:
    fields = await get_body_fields(request)
    if spec.name not in fields:
        return _fallback(spec)
    try:
        return convert_json_value(fields[spec.name], spec.annotation)
    except ConversionError:
        logger.debug("Body field %r could not be converted to %s", spec.name, spec.annotation)
        return _fallback(spec)


async def bind_parameter(
    spec: ParameterSpec,
    request: Request,
    resolver: Resolver,
    config: RoutingConfig = DEFAULT_CONFIG,
) -> Any:
    if spec.source is BindingSource.REQUEST:
        return request
    if spec.body_sourced:
        if body_applies(request, config.body_methods):
            return await bind_body(spec, request)
        # no JSON body to read: query string when bindable from it, else default
        if is_query_type(spec.annotation):
            return bind_query(spec, request)
        return _fallback(spec)
    if is_query_type(spec.annotation):
        return bind_query(spec, request)
    return resolver.resolve(spec.annotation)


async def bind_arguments(
    descriptor: EndpointDescriptor,
    request: Request,
    resolver: Resolver,
    config: RoutingConfig = DEFAULT_CONFIG,
) -> dict[str, Any]:
    """Keyword arguments for the handler, in declaration order."""
    kwargs: dict[str, Any] = {}
    for spec in descriptor.parameters:
        kwargs[spec.name] = await bind_parameter(spec, request, resolver, config)
    return kwargs
