from apirouting.markers import (
    FromBody,
    HttpMethod,
    endpoint_metadata,
    from_body,
    has_function_body_marker,
    http_get,
    http_method,
    http_post,
    markers_of,
    metadata_of,
)


def test_http_method_values_are_wire_strings():
    assert [m.value for m in HttpMethod] == ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]
    assert str(HttpMethod.PATCH) == "PATCH"
    assert HttpMethod("HEAD") is HttpMethod.HEAD


def test_markers_stack_one_verb_each():
    @http_get
    @http_post
    class Both:
        pass

    assert markers_of(Both) == (HttpMethod.POST, HttpMethod.GET)


def test_class_markers_are_not_inherited():
    @http_get
    class Base:
        pass

    class Child(Base):
        pass

    assert markers_of(Base) == (HttpMethod.GET,)
    assert markers_of(Child) == ()


def test_http_method_accepts_lowercase_names():
    @http_method("delete")
    def remove():
        pass

    assert markers_of(remove) == (HttpMethod.DELETE,)


def test_markers_on_staticmethod_land_on_the_function():
    class Holder:
        @http_get
        @staticmethod
        def ping():
            return "pong"

    assert markers_of(Holder.__dict__["ping"]) == (HttpMethod.GET,)
    assert markers_of(Holder.ping) == (HttpMethod.GET,)


def test_from_body_legacy_and_parameter_forms():
    @from_body
    def handler(name: str):
        pass

    def plain(name: str):
        pass

    assert has_function_body_marker(handler)
    assert not has_function_body_marker(plain)
    assert FromBody() == FromBody()
    assert repr(FromBody()) == "FromBody()"


def test_endpoint_metadata_accumulates():
    @endpoint_metadata("orders")
    @endpoint_metadata({"rate": 10})
    class Tagged:
        pass

    assert metadata_of(Tagged) == ({"rate": 10}, "orders")
