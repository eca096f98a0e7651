from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Iterable, Iterator, Protocol, Union

from fastapi.routing import APIRoute
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from apirouting.binding.binder import bind_arguments
from apirouting.config import DEFAULT_CONFIG, RoutingConfig
from apirouting.discovery.scanner import find_endpoint_types
from apirouting.docs.metadata import METADATA_KEY, build_openapi_extra, metadata_entries
from apirouting.domain.models import EndpointDescriptor, EndpointTable
from apirouting.orchestrator.pipeline import build_endpoint_table
from apirouting.services import ServiceCollection

logger = logging.getLogger(__name__)

DESCRIPTOR_ATTR = "__endpoint_descriptor__"

Convention = Callable[[APIRoute], None]


class RouteHost(Protocol):
    """FastAPI app or APIRouter."""

    routes: list

    def add_api_route(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> None: ...


class ScopeFactory(Protocol):
    def create_scope(self) -> Any: ...


class EndpointGroup:
    """
    Handle over every route registered by one `map_api_endpoints` call.
    Conventions apply to the routes already in the group and to any added later.
    """

    def __init__(self) -> None:
        self.routes: list[APIRoute] = []
        self.descriptors: list[EndpointDescriptor] = []
        self._conventions: list[Convention] = []

    def add(self, route: APIRoute, descriptor: EndpointDescriptor) -> None:
        self.routes.append(route)
        self.descriptors.append(descriptor)
        for convention in self._conventions:
            convention(route)

    def add_convention(self, convention: Convention) -> "EndpointGroup":
        self._conventions.append(convention)
        for route in self.routes:
            convention(route)
        return self

    def with_tags(self, *tags: str) -> "EndpointGroup":
        def _tags(route: APIRoute) -> None:
            route.tags = list(route.tags or [])
            route.tags.extend(t for t in tags if t not in route.tags)

        return self.add_convention(_tags)

    def with_metadata(self, *items: Any) -> "EndpointGroup":
        def _metadata(route: APIRoute) -> None:
            extra = dict(route.openapi_extra or {})
            extra[METADATA_KEY] = list(extra.get(METADATA_KEY, [])) + metadata_entries(items)
            route.openapi_extra = extra

        return self.add_convention(_metadata)

    def __iter__(self) -> Iterator[APIRoute]:
        return iter(self.routes)

    def __len__(self) -> int:
        return len(self.routes)


def add_api_endpoints(services: ServiceCollection, types: Iterable[object]) -> ServiceCollection:
    """Register every candidate handler type as a transient service."""
    for cls in find_endpoint_types(types):
        services.add_transient(cls)
    return services


async def _invoke(target: Callable[..., Any], kwargs: dict[str, Any]) -> Any:
    if inspect.iscoroutinefunction(target):
        return await target(**kwargs)
    result = await run_in_threadpool(target, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def _describe(callback: Callable[..., Any], descriptor: EndpointDescriptor) -> None:
    # Name the generic callback after the handler so the operation is
    # documented under it; on failure the generic callback is kept as is.
    handler = descriptor.handler
    try:
        callback.__name__ = handler.__name__
        callback.__qualname__ = f"{descriptor.endpoint_type.__qualname__}.{descriptor.handler_name}"
        callback.__doc__ = inspect.getdoc(handler) or inspect.getdoc(descriptor.endpoint_type)
    except (AttributeError, TypeError):
        logger.debug("Keeping generic callback for %s", descriptor.qualname, exc_info=True)


def make_request_handler(
    descriptor: EndpointDescriptor,
    provider: ScopeFactory,
    config: RoutingConfig = DEFAULT_CONFIG,
) -> Callable[[Request], Any]:
    """
    Request-time callback: opens a service scope, resolves the handler type,
    binds the arguments and invokes the handler. The scope is closed on every
    exit path.
    """

    async def endpoint(request: Request) -> Any:
        async with provider.create_scope() as scope:
            instance = scope.resolve(descriptor.endpoint_type)
            kwargs = await bind_arguments(descriptor, request, scope, config)
            return await _invoke(getattr(instance, descriptor.handler_name), kwargs)

    _describe(endpoint, descriptor)
    setattr(endpoint, DESCRIPTOR_ATTR, descriptor)
    return endpoint


def map_api_endpoints(
    host: RouteHost,
    provider: ScopeFactory,
    endpoints: Union[EndpointTable, Iterable[object]],
    config: RoutingConfig = DEFAULT_CONFIG,
) -> EndpointGroup:
    """
    Map every endpoint onto `host` and return one handle for all of them.
    `endpoints` is a prebuilt table or a type universe to scan.
    """
    table = endpoints if isinstance(endpoints, EndpointTable) else build_endpoint_table(endpoints, config)

    group = EndpointGroup()
    for descriptor in table:
        callback = make_request_handler(descriptor, provider, config)
        host.add_api_route(
            descriptor.route,
            callback,
            methods=[descriptor.method.value],
            name=f"{descriptor.endpoint_type.__qualname__}.{descriptor.handler_name}",
            response_model=None,
            openapi_extra=build_openapi_extra(descriptor) or None,
        )
        logger.info("Registered API: %s %s", descriptor.method.value, descriptor.route)
        group.add(host.routes[-1], descriptor)
    return group
