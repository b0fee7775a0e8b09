"""FastAPI adapter for the route table and middleware chains.

The standard chain is hosted by a single ``BaseHTTPMiddleware`` so it
wraps every request, including ones no route matches. Each route's own
chain is applied by a generated ``APIRoute`` subclass.
"""

import logging
import re
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from snippetbox.core.chain import Chain
from snippetbox.core.routing import RouteTable

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"^[0-9]+$")
_MAX_ID = 2**63 - 1


class PipelineMiddleware(BaseHTTPMiddleware):
    """Run a Chain around everything below it in the ASGI stack."""

    def __init__(self, app: ASGIApp, chain: Chain) -> None:
        super().__init__(app)
        self.chain = chain

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        return await self.chain.then(call_next)(request)


def install_routes(app: FastAPI, table: RouteTable) -> None:
    """Register every entry of ``table`` on ``app``.

    Freezes the table. Unmatched methods on a known path answer 404 like
    unknown paths do, and error responses are plain text.
    """
    entries = table.freeze()

    for entry in entries:
        route_class = _route_class_for(entry.chain) if entry.chain else APIRoute
        app.router.add_api_route(
            entry.path,
            entry.handler,
            methods=[entry.method],
            name=f"{entry.method.lower()}:{entry.pattern}",
            include_in_schema=False,
            route_class_override=route_class,
        )
        logger.debug(
            "Installed route",
            extra={"method": entry.method, "path": entry.path, "middleware": entry.chain.names},
        )

    app.add_exception_handler(StarletteHTTPException, http_error_response)

    logger.info("Route registration complete", extra={"route_count": len(entries)})


async def http_error_response(request: Request, exc: StarletteHTTPException) -> Response:
    """Render an HTTPException as a plain-text status response."""
    status_code = exc.status_code
    headers = dict(exc.headers or {})
    if status_code == 405:
        status_code = 404
        headers.pop("Allow", None)
        headers.pop("allow", None)

    detail = exc.detail if status_code == exc.status_code else "Not Found"
    return PlainTextResponse(str(detail), status_code=status_code, headers=headers or None)


def positive_int_param(request: Request, name: str) -> int:
    """Return path parameter ``name`` as a positive integer.

    Anything else (negative, decimal, non-numeric, empty, out of range)
    raises a 404, so a malformed identifier looks exactly like a missing
    resource.

    Raises:
        HTTPException: 404 when the value is not a positive integer.
    """
    raw = request.path_params.get(name, "")
    if not isinstance(raw, str) or not _DIGITS.match(raw):
        raise StarletteHTTPException(status_code=404)
    value = int(raw)
    if value < 1 or value > _MAX_ID:
        raise StarletteHTTPException(status_code=404)
    return value


def _route_class_for(chain: Chain) -> type[APIRoute]:
    """Return an APIRoute subclass whose endpoint runs inside ``chain``.

    FastAPI resolves path parameters before calling the route handler, so
    interceptors already see ``request.path_params``.
    """

    class ChainedRoute(APIRoute):
        def get_route_handler(self) -> Callable[..., Any]:
            return chain.then(super().get_route_handler())

    return ChainedRoute
