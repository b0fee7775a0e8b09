"""Tests for the security headers interceptor."""

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from snippetbox.middleware.headers import SECURE_HEADERS, secure_headers
from tests.conftest import make_request


async def test_headers_added_to_every_response() -> None:
    async def not_found(request: Request) -> Response:
        return PlainTextResponse("Not Found", status_code=404)

    response = await secure_headers(make_request(), not_found)

    assert response.status_code == 404
    assert response.headers["x-frame-options"] == "deny"
    assert response.headers["x-xss-protection"] == "1; mode=block"
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["referrer-policy"] == "origin-when-cross-origin"


async def test_handler_values_are_overwritten() -> None:
    async def handler(request: Request) -> Response:
        return PlainTextResponse("ok", headers={"X-Frame-Options": "sameorigin"})

    response = await secure_headers(make_request(), handler)

    assert response.headers.getlist("x-frame-options") == [SECURE_HEADERS["X-Frame-Options"]]
