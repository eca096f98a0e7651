from abc import ABC, abstractmethod

from apirouting.discovery.scanner import (
    find_endpoint_types,
    is_endpoint_candidate,
    iter_module_types,
    public_functions,
)
from apirouting.markers import http_get, http_post


@http_get
class ClassMarked:
    async def handle_async(self):
        pass


class MethodMarked:
    @http_post
    async def create(self):
        pass


class Unmarked:
    async def handle_async(self):
        pass


class PrivateOnly:
    @http_get
    def _hidden(self):
        pass


@http_get
class AbstractEndpoint(ABC):
    @abstractmethod
    async def handle_async(self):
        ...


def test_find_endpoint_types_is_a_pure_filter():
    universe = [ClassMarked, Unmarked, MethodMarked, AbstractEndpoint, PrivateOnly, ClassMarked, 42, "x"]
    assert find_endpoint_types(universe) == [ClassMarked, MethodMarked]


def test_is_endpoint_candidate_rejects_non_classes():
    assert not is_endpoint_candidate(len)
    assert not is_endpoint_candidate(None)
    assert is_endpoint_candidate(MethodMarked)


def test_public_functions_most_derived_first_and_no_duplicates():
    class Base:
        def a(self):
            pass

        def b(self):
            pass

    class Child(Base):
        def b(self):
            pass

        def c(self):
            pass

        def _private(self):
            pass

    names = [name for name, _ in public_functions(Child)]
    assert names == ["b", "c", "a"]
    assert dict(public_functions(Child))["b"] is Child.__dict__["b"]


def test_iter_module_types_walks_packages_and_skips_imports(project):
    project.write(
        "shop/orders/create.py",
        """
        from apirouting.markers import http_post

        class CreateOrder:
            @http_post
            async def create(self):
                return None
        """,
    )
    project.write(
        "shop/orders/helpers.py",
        """
        from shop.orders.create import CreateOrder  # imported, not defined here

        class Helper:
            pass
        """,
    )
    project.write(
        "shop/build/generated.py",
        """
        class Generated:
            pass
        """,
    )

    names = [t.__qualname__ for t in iter_module_types("shop")]
    assert names == ["CreateOrder", "Helper"]
