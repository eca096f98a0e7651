from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from apirouting.markers import HttpMethod


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class BindingSource(str, Enum):
    BODY = "body"
    QUERY = "query"
    REQUEST = "request"
    SERVICE = "service"


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    annotation: Any             # declared type, Optional/Annotated stripped
    body_sourced: bool = False
    default: Any = MISSING
    source: BindingSource = BindingSource.SERVICE
    metadata: tuple[Any, ...] = ()   # extra Annotated[...] items
    optional: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING


@dataclass(frozen=True)
class EndpointDescriptor:
    """Fully resolved endpoint; built once at start-up, never mutated."""

    endpoint_type: type
    method: HttpMethod
    handler: Callable[..., Any]
    handler_name: str
    route: str
    class_level: bool
    parameters: tuple[ParameterSpec, ...] = ()
    source_file: Optional[Path] = None
    metadata: tuple[Any, ...] = ()

    @property
    def qualname(self) -> str:
        return f"{self.endpoint_type.__module__}.{self.endpoint_type.__qualname__}"

    def summary(self) -> dict[str, Any]:
        return {
            "method": self.method.value,
            "path": self.route,
            "handler": f"{self.endpoint_type.__qualname__}.{self.handler_name}",
            "file": str(self.source_file) if self.source_file else "",
            "class_level": self.class_level,
            "parameters": [
                {"name": p.name, "source": p.source.value, "type": getattr(p.annotation, "__name__", str(p.annotation))}
                for p in self.parameters
            ],
        }


@dataclass(frozen=True)
class EndpointTable:
    descriptors: tuple[EndpointDescriptor, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[EndpointDescriptor]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)

    def find(self, method: HttpMethod | str, route: str) -> Optional[EndpointDescriptor]:
        verb = HttpMethod(str(method).upper())
        for d in self.descriptors:
            if d.method is verb and d.route == route:
                return d
        return None

    @property
    def endpoint_types(self) -> tuple[type, ...]:
        return tuple(d.endpoint_type for d in self.descriptors)
