from starlette.responses import JSONResponse, Response

from apirouting.config import RoutingConfig
from apirouting.discovery.resolver import resolve_handler
from apirouting.markers import HttpMethod, http_delete, http_get, http_post, http_put
from apirouting.results import ApiResult


class Accepted(ApiResult):
    pass


@http_get
class ListProducts:
    def helper_async(self) -> dict:
        return {}

    async def handle_async(self, category: str) -> JSONResponse:
        return JSONResponse([])


@http_put
class MultiVariant:
    async def update_async(self) -> JSONResponse | Accepted:
        return Accepted()


@http_get
class WrongSuffix:
    async def handle(self) -> JSONResponse:
        return JSONResponse({})


@http_get
class WrongReturnType:
    async def handle_async(self) -> dict:
        return {}


class SingleMethod:
    @http_post
    async def create(self, name: str):
        return {"name": name}

    def unrelated(self):
        pass


class TwoMethods:
    @http_get
    async def read(self):
        pass

    @http_delete
    async def remove(self):
        pass


class DoubleMarkedMethod:
    @http_get
    @http_post
    async def both(self):
        pass


@http_get
@http_post
class TwoClassMarkers:
    @http_delete
    async def remove(self):
        pass


def test_class_level_marker_picks_suffix_handler_returning_result():
    resolved = resolve_handler(ListProducts)
    assert resolved is not None
    assert resolved.method is HttpMethod.GET
    assert resolved.name == "handle_async"
    assert resolved.class_level is True


def test_class_level_accepts_multi_variant_result():
    resolved = resolve_handler(MultiVariant)
    assert resolved is not None
    assert resolved.method is HttpMethod.PUT
    assert resolved.name == "update_async"


def test_class_level_without_qualifying_handler_is_rejected():
    assert resolve_handler(WrongSuffix) is None
    assert resolve_handler(WrongReturnType) is None


def test_handler_suffix_is_configurable():
    resolved = resolve_handler(WrongSuffix, RoutingConfig(handler_suffix="handle"))
    assert resolved is not None
    assert resolved.name == "handle"


def test_single_method_level_marker():
    resolved = resolve_handler(SingleMethod)
    assert resolved is not None
    assert resolved.method is HttpMethod.POST
    assert resolved.name == "create"
    assert resolved.class_level is False


def test_ambiguous_method_markers_are_rejected():
    assert resolve_handler(TwoMethods) is None
    assert resolve_handler(DoubleMarkedMethod) is None


def test_two_class_markers_fall_back_to_method_resolution():
    resolved = resolve_handler(TwoClassMarkers)
    assert resolved is not None
    assert resolved.method is HttpMethod.DELETE
    assert resolved.class_level is False


def test_static_handlers_are_flagged():
    class Static:
        @http_get
        @staticmethod
        def ping() -> Response:
            return Response("pong")

    resolved = resolve_handler(Static)
    assert resolved is not None
    assert resolved.is_static is True
