"""Outermost interceptor: turns unhandled failures into 500 responses."""

import logging
from collections.abc import Callable
from typing import Any

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from snippetbox.middleware.headers import apply_secure_headers

logger = logging.getLogger(__name__)


async def recover_panic(request: Request, call_next: Callable[..., Any]) -> Response:
    """Catch any exception raised further down the pipeline.

    The failure is logged with its traceback and the request line, and the
    client gets a 500 with ``Connection: close`` so the server drops the
    connection instead of reusing it after a half-finished exchange. The
    security headers are applied here too because the interceptor that
    normally adds them never saw a response.
    """
    try:
        return await call_next(request)
    except Exception:
        logger.exception(
            "Unhandled error processing %s %s",
            request.method,
            request.url.path,
            extra={"method": request.method, "path": request.url.path},
        )
        response = PlainTextResponse(
            "Internal Server Error",
            status_code=500,
            headers={"Connection": "close"},
        )
        return apply_secure_headers(response)
