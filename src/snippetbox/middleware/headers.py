"""Fixed protective response headers."""

from collections.abc import Callable
from typing import Any

from starlette.requests import Request
from starlette.responses import Response

SECURE_HEADERS: dict[str, str] = {
    "X-Frame-Options": "deny",
    "X-XSS-Protection": "1; mode=block",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "origin-when-cross-origin",
}


def apply_secure_headers(response: Response) -> Response:
    for name, value in SECURE_HEADERS.items():
        response.headers[name] = value
    return response


async def secure_headers(request: Request, call_next: Callable[..., Any]) -> Response:
    response = await call_next(request)
    return apply_secure_headers(response)
