from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from apirouting.binding.binder import build_parameter_specs
from apirouting.config import DEFAULT_CONFIG, RoutingConfig
from apirouting.discovery.resolver import resolve_handler
from apirouting.discovery.scanner import ModuleTarget, find_endpoint_types, iter_module_types
from apirouting.docs.metadata import collect_endpoint_metadata
from apirouting.domain.models import EndpointDescriptor, EndpointTable
from apirouting.routing.paths import derive_route


@dataclass(frozen=True)
class ScanResult:
    types_scanned: int
    candidates: tuple[type, ...]
    rejected: tuple[type, ...]
    table: EndpointTable


def build_descriptor(cls: type, config: RoutingConfig = DEFAULT_CONFIG) -> Optional[EndpointDescriptor]:
    """
    Descriptor for one candidate type, or None when its handler is ambiguous
    or missing. Route derivation errors propagate.
    """
    resolved = resolve_handler(cls, config)
    if resolved is None:
        return None

    route, source = derive_route(cls, resolved.class_level, config)
    parameters = build_parameter_specs(resolved.handler, is_static=resolved.is_static)

    return EndpointDescriptor(
        endpoint_type=cls,
        method=resolved.method,
        handler=resolved.handler,
        handler_name=resolved.name,
        route=route,
        class_level=resolved.class_level,
        parameters=parameters,
        source_file=source,
        metadata=collect_endpoint_metadata(cls, resolved.handler, parameters),
    )


def scan_types(types: Iterable[object], config: RoutingConfig = DEFAULT_CONFIG) -> ScanResult:
    universe = list(types)
    candidates = find_endpoint_types(universe)

    descriptors: list[EndpointDescriptor] = []
    rejected: list[type] = []
    for cls in candidates:
        descriptor = build_descriptor(cls, config)
        if descriptor is None:
            rejected.append(cls)
            continue
        descriptors.append(descriptor)

    # stable ordering = stable route table
    descriptors.sort(key=lambda d: (d.route, d.method.value, d.qualname))

    return ScanResult(
        types_scanned=len(universe),
        candidates=tuple(candidates),
        rejected=tuple(rejected),
        table=EndpointTable(tuple(descriptors)),
    )


def build_endpoint_table(types: Iterable[object], config: RoutingConfig = DEFAULT_CONFIG) -> EndpointTable:
    """Scan → resolve → derive, once, before traffic is accepted."""
    return scan_types(types, config).table


def scan_modules(*targets: ModuleTarget, config: RoutingConfig = DEFAULT_CONFIG) -> ScanResult:
    return scan_types(iter_module_types(*targets, ignores=config.ignore_dirs), config)
