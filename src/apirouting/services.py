from __future__ import annotations

import inspect
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, Optional, get_type_hints

from apirouting.errors import ServiceResolutionError


class Lifetime(str, Enum):
    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class ServiceRegistration:
    service_type: Any
    factory: Optional[Callable[..., Any]]
    lifetime: Lifetime
    instance: Any = None


class ServiceCollection:
    """Registrations made during start-up; turned into a provider once."""

    def __init__(self) -> None:
        self._registrations: dict[Any, ServiceRegistration] = {}

    def add(
        self,
        service_type: Any,
        factory: Optional[Callable[..., Any]] = None,
        lifetime: Lifetime = Lifetime.TRANSIENT,
    ) -> "ServiceCollection":
        self._registrations[service_type] = ServiceRegistration(service_type, factory, lifetime)
        return self

    def add_transient(self, service_type: Any, factory: Optional[Callable[..., Any]] = None) -> "ServiceCollection":
        return self.add(service_type, factory, Lifetime.TRANSIENT)

    def add_scoped(self, service_type: Any, factory: Optional[Callable[..., Any]] = None) -> "ServiceCollection":
        return self.add(service_type, factory, Lifetime.SCOPED)

    def add_singleton(
        self,
        service_type: Any,
        factory: Optional[Callable[..., Any]] = None,
        *,
        instance: Any = None,
    ) -> "ServiceCollection":
        self._registrations[service_type] = ServiceRegistration(
            service_type, factory, Lifetime.SINGLETON, instance
        )
        return self

    def __contains__(self, service_type: Any) -> bool:
        return service_type in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)

    def build_provider(self) -> "ServiceProvider":
        return ServiceProvider(dict(self._registrations))


def _run_cleanup(cleanup: list[Callable[[], Any]]) -> None:
    # reverse creation order; the first failure is re-raised after all ran
    errors: list[BaseException] = []
    while cleanup:
        fn = cleanup.pop()
        try:
            fn()
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
    if errors:
        raise errors[0]


class ServiceProvider:
    def __init__(self, registrations: dict[Any, ServiceRegistration]) -> None:
        self._registrations = registrations
        self._singletons: dict[Any, Any] = {
            r.service_type: r.instance
            for r in registrations.values()
            if r.lifetime is Lifetime.SINGLETON and r.instance is not None
        }
        # teardown of singletons built from generators or context managers
        self._cleanup: list[Callable[[], Any]] = []

    def registration_for(self, service_type: Any) -> Optional[ServiceRegistration]:
        return self._registrations.get(service_type)

    def get_required_service(self, service_type: Any) -> Any:
        """
        Resolve outside of any request. Scoped services, and transient ones
        that need teardown, are refused: nothing would ever release them.
        """
        reg = self.registration_for(service_type)
        if reg is not None and reg.lifetime is Lifetime.SCOPED:
            raise ServiceResolutionError(service_type, "scoped service requested from the root provider")

        scope = ServiceScope(self)
        value = scope.resolve(service_type)
        if scope.needs_cleanup:
            scope.close()
            raise ServiceResolutionError(
                service_type, "instance needs teardown; resolve it inside create_scope()"
            )
        return value

    @asynccontextmanager
    async def create_scope(self) -> AsyncIterator["ServiceScope"]:
        scope = ServiceScope(self)
        try:
            yield scope
        finally:
            await scope.aclose()

    def close(self) -> None:
        """Tear down singletons; call once when the application shuts down."""
        _run_cleanup(self._cleanup)
        self._singletons.clear()

    async def aclose(self) -> None:
        self.close()


class ServiceScope:
    """
    Lifetime boundary of one request. Scoped and transient instances produced
    by generator factories or implementing the context manager protocol are
    torn down when the scope closes, whatever way the request ended.
    Singletons belong to the provider and outlive the scope.
    """

    def __init__(self, provider: ServiceProvider) -> None:
        self.provider = provider
        self._instances: dict[Any, Any] = {}
        self._cleanup: list[Callable[[], Any]] = []
        self._closed = False

    def resolve(self, service_type: Any) -> Any:
        if service_type is ServiceScope:
            return self
        if service_type is ServiceProvider:
            return self.provider

        reg = self.provider.registration_for(service_type)
        if reg is None:
            raise ServiceResolutionError(service_type)

        if reg.lifetime is Lifetime.SINGLETON:
            singletons = self.provider._singletons
            if service_type not in singletons:
                singletons[service_type] = self._build(reg, self.provider._cleanup)
            return singletons[service_type]

        if reg.lifetime is Lifetime.SCOPED:
            if service_type not in self._instances:
                self._instances[service_type] = self._build(reg, self._cleanup)
            return self._instances[service_type]

        return self._build(reg, self._cleanup)

    def _kwargs_for(self, factory: Callable[..., Any]) -> dict[str, Any]:
        target = factory.__init__ if inspect.isclass(factory) else factory
        try:
            hints = get_type_hints(target)
        except (NameError, TypeError) as exc:
            raise ServiceResolutionError(factory, f"unresolvable annotations ({exc})") from exc

        kwargs: dict[str, Any] = {}
        for name, param in inspect.signature(factory).parameters.items():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            annotation = hints.get(name)
            registered = annotation is not None and (
                annotation in (ServiceScope, ServiceProvider)
                or self.provider.registration_for(annotation) is not None
            )
            if registered:
                kwargs[name] = self.resolve(annotation)
            elif param.default is inspect.Parameter.empty:
                raise ServiceResolutionError(factory, f"cannot satisfy parameter '{name}'")
        return kwargs

    def _build(self, reg: ServiceRegistration, cleanup: list[Callable[[], Any]]) -> Any:
        factory = reg.factory or reg.service_type
        if not callable(factory):
            raise ServiceResolutionError(reg.service_type, "registration is not callable")
        value = factory(**self._kwargs_for(factory))

        if inspect.isgenerator(value):
            gen = value
            value = next(gen)
            cleanup.append(gen.close)
        elif hasattr(value, "__enter__") and hasattr(value, "__exit__"):
            cm = value
            value = cm.__enter__()

            def _exit(cm: Any = cm) -> None:
                cm.__exit__(None, None, None)

            cleanup.append(_exit)
        return value

    @property
    def needs_cleanup(self) -> bool:
        return bool(self._cleanup)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._instances.clear()
        _run_cleanup(self._cleanup)

    async def aclose(self) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed
