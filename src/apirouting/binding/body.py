from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from starlette.requests import Request

from apirouting.markers import HttpMethod

logger = logging.getLogger(__name__)

BODY_CACHE_KEY = "apirouting_body_fields"

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def is_json_request(request: Request) -> bool:
    content_type = (request.headers.get("content-type") or "").split(";", 1)[0].strip().lower()
    return content_type == "application/json" or content_type.endswith("+json")


def body_applies(request: Request, body_methods: Iterable[HttpMethod]) -> bool:
    methods = {m.value for m in body_methods}
    return request.method.upper() in methods and is_json_request(request)


async def get_body_fields(request: Request) -> Mapping[str, Any]:
    """
    Parsed JSON object of the request body, read once per request.

    The mapping lives in the request's scope state, so every Request object
    built for the same request shares it; repeated calls return the same
    object. Unparsable or non-object bodies yield an empty mapping.
    """
    cached = getattr(request.state, BODY_CACHE_KEY, None)
    if cached is not None:
        return cached

    raw = await request.body()
    fields = _EMPTY
    if raw:
        try:
            data = json.loads(raw)
        except (ValueError, UnicodeDecodeError):
            logger.debug("Request body is not valid JSON; body-bound parameters use defaults")
            data = None
        if isinstance(data, dict):
            fields = MappingProxyType(data)

    setattr(request.state, BODY_CACHE_KEY, fields)
    return fields
