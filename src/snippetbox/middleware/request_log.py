"""Access logging for every request."""

import logging
import time
from collections.abc import Callable
from typing import Any

from starlette.requests import Request
from starlette.responses import Response

access_logger = logging.getLogger("snippetbox.access")


async def log_request(request: Request, call_next: Callable[..., Any]) -> Response:
    """Log one line per request: client, protocol, method, URI, status, duration.

    5xx responses are logged at ERROR and 4xx at WARNING.
    """
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000

    client = request.client.host if request.client else "unknown"
    protocol = f"HTTP/{request.scope.get('http_version', '1.1')}"
    uri = request.url.path + (f"?{request.url.query}" if request.url.query else "")
    status = response.status_code

    if status >= 500:
        level = logging.ERROR
    elif status >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO

    access_logger.log(
        level,
        "%s - %s %s %s %d %.1fms",
        client,
        protocol,
        request.method,
        uri,
        status,
        duration_ms,
        extra={
            "client": client,
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": round(duration_ms, 2),
        },
    )
    return response
