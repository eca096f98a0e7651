import asyncio

import pytest

from apirouting.errors import ServiceResolutionError
from apirouting.services import Lifetime, ServiceCollection, ServiceProvider, ServiceScope


class Settings:
    def __init__(self, name: str = "default"):
        self.name = name


class Repository:
    def __init__(self, settings: Settings):
        self.settings = settings


class Counter:
    pass


class Session:
    def __init__(self):
        self.open = True


class Needy:
    def __init__(self, missing: Counter):
        self.missing = missing


class Tracked:
    def __init__(self):
        self.entered = False
        self.exited = False

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, *exc):
        self.exited = True


def in_scope(provider, fn):
    async def run():
        async with provider.create_scope() as scope:
            return fn(scope), scope

    return asyncio.run(run())


def test_lifetimes():
    services = (
        ServiceCollection()
        .add_singleton(Settings)
        .add_scoped(Repository)
        .add_transient(Counter)
    )
    assert len(services) == 3 and Repository in services
    provider = services.build_provider()

    (a1, a2, s1, c1, c2), _ = in_scope(
        provider,
        lambda s: (s.resolve(Repository), s.resolve(Repository), s.resolve(Settings), s.resolve(Counter), s.resolve(Counter)),
    )
    (b1, s2), _ = in_scope(provider, lambda s: (s.resolve(Repository), s.resolve(Settings)))

    assert a1 is a2
    assert a1 is not b1
    assert s1 is s2
    assert a1.settings is s1
    assert c1 is not c2


def test_singleton_instance_registration():
    settings = Settings("prod")
    provider = ServiceCollection().add_singleton(Settings, instance=settings).build_provider()
    assert provider.get_required_service(Settings) is settings


def test_scoped_service_refused_from_root_provider():
    provider = ServiceCollection().add_scoped(Session).build_provider()
    with pytest.raises(ServiceResolutionError):
        provider.get_required_service(Session)


def test_missing_registration_raises_lookup_error():
    provider = ServiceCollection().build_provider()
    with pytest.raises(LookupError) as err:
        in_scope(provider, lambda s: s.resolve(Counter))
    assert isinstance(err.value, ServiceResolutionError)
    assert err.value.service_type is Counter


def test_unsatisfiable_constructor_parameter():
    provider = ServiceCollection().add_transient(Needy).build_provider()
    with pytest.raises(ServiceResolutionError):
        provider.get_required_service(Needy)


def test_scope_and_provider_resolve_to_themselves():
    provider = ServiceCollection().build_provider()
    (scope_value, provider_value), scope = in_scope(
        provider, lambda s: (s.resolve(ServiceScope), s.resolve(ServiceProvider))
    )
    assert scope_value is scope
    assert provider_value is provider


def test_generator_factory_cleanup_runs_when_scope_closes():
    events = []

    def open_session():
        session = Session()
        events.append("open")
        try:
            yield session
        finally:
            session.open = False
            events.append("close")

    provider = ServiceCollection().add_scoped(Session, open_session).build_provider()
    session, scope = in_scope(provider, lambda s: s.resolve(Session))

    assert events == ["open", "close"]
    assert session.open is False
    assert scope.closed


def test_cleanup_runs_when_the_request_fails():
    events = []

    def open_session():
        try:
            yield Session()
        finally:
            events.append("close")

    provider = ServiceCollection().add(Session, open_session, Lifetime.SCOPED).build_provider()

    async def run():
        async with provider.create_scope() as scope:
            scope.resolve(Session)
            raise RuntimeError("handler failed")

    with pytest.raises(RuntimeError):
        asyncio.run(run())
    assert events == ["close"]


def test_context_manager_instances_are_exited():
    provider = ServiceCollection().add_transient(Tracked).build_provider()
    tracked, _ = in_scope(provider, lambda s: s.resolve(Tracked))
    assert tracked.entered and tracked.exited


def test_singleton_teardown_belongs_to_the_provider():
    events = []

    def open_connection():
        session = Session()
        try:
            yield session
        finally:
            session.open = False
            events.append("close")

    provider = ServiceCollection().add_singleton(Session, open_connection).build_provider()
    first, _ = in_scope(provider, lambda s: s.resolve(Session))
    second, _ = in_scope(provider, lambda s: s.resolve(Session))

    assert first is second
    assert first.open is True
    assert events == []

    asyncio.run(provider.aclose())
    assert first.open is False
    assert events == ["close"]


def test_root_provider_refuses_transients_that_need_teardown():
    events = []

    def open_session():
        try:
            yield Session()
        finally:
            events.append("close")

    provider = ServiceCollection().add_transient(Session, open_session).build_provider()
    with pytest.raises(ServiceResolutionError):
        provider.get_required_service(Session)
    assert events == ["close"]

    tracked = ServiceCollection().add_transient(Tracked).build_provider()
    with pytest.raises(ServiceResolutionError):
        tracked.get_required_service(Tracked)
