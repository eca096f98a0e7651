from __future__ import annotations

from pathlib import Path
from typing import Sequence


class RoutingError(Exception):
    """Base class for endpoint registration failures."""


class RouteDerivationError(RoutingError):
    """A route could not be derived; start-up must not continue."""


class ProjectRootNotFoundError(RouteDerivationError):
    def __init__(self, start: Path, manifests: Sequence[str]):
        super().__init__(
            f"Could not find project root above {start} (looked for: {', '.join(manifests)})"
        )
        self.start = start
        self.manifests = tuple(manifests)


class SourceFileNotFoundError(RouteDerivationError):
    def __init__(self, qualname: str):
        super().__init__(f"Could not determine file location for type {qualname}")
        self.qualname = qualname


class AmbiguousSourceFileError(RouteDerivationError):
    def __init__(self, qualname: str, candidates: Sequence[Path]):
        listed = ", ".join(str(c) for c in candidates)
        super().__init__(f"Several source files match type {qualname}: {listed}")
        self.qualname = qualname
        self.candidates = tuple(candidates)


class ServiceResolutionError(RoutingError, LookupError):
    def __init__(self, service_type: object, reason: str = "no registration"):
        name = getattr(service_type, "__qualname__", repr(service_type))
        super().__init__(f"Cannot resolve service {name}: {reason}")
        self.service_type = service_type
