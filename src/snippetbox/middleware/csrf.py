"""CSRF protection using the synchronizer token pattern.

Each session carries one random token. Pages that render a form embed it
with ``csrf_token(request)``; unsafe requests (POST, PUT, PATCH, DELETE)
must echo it back, either in the ``csrf_token`` form field or in the
``X-CSRF-Token`` header. The token survives for the lifetime of the
session and is dropped when the session is renewed, so a fresh one is
issued after login.
"""

import logging
import secrets
from collections.abc import Callable
from typing import Any

from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from snippetbox.middleware.session import get_session
from snippetbox.sessions.store import CSRF_TOKEN_KEY

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
HEADER_NAME = "x-csrf-token"
FORM_FIELD = "csrf_token"

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def csrf_token(request: Request) -> str:
    """Return the session's CSRF token, issuing one on first use."""
    session = get_session(request)
    token = session.get_str(CSRF_TOKEN_KEY)
    if token is None:
        token = secrets.token_urlsafe(32)
        session.put(CSRF_TOKEN_KEY, token)
    return token


async def _submitted_token(request: Request) -> str | None:
    header = request.headers.get(HEADER_NAME)
    if header:
        return header

    content_type = request.headers.get("content-type", "").lower()
    if not content_type.startswith(_FORM_CONTENT_TYPES):
        return None

    try:
        form = await request.form()
    except (MultiPartException, HTTPException, ValueError) as exc:
        logger.info("Unreadable form body", extra={"path": request.url.path, "error": str(exc)})
        return None

    value = form.get(FORM_FIELD)
    return value if isinstance(value, str) else None


async def csrf_protect(request: Request, call_next: Callable[..., Any]) -> Response:
    """Reject unsafe requests whose token does not match the session's."""
    if request.method in SAFE_METHODS:
        return await call_next(request)

    session = getattr(request.state, "session", None)
    expected = session.get_str(CSRF_TOKEN_KEY) if session is not None else None
    submitted = await _submitted_token(request) if expected is not None else None

    if (
        expected is None
        or not submitted
        or not secrets.compare_digest(submitted.encode(), expected.encode())
    ):
        logger.info(
            "CSRF token verification failed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "issued": expected is not None,
                "submitted": bool(submitted),
            },
        )
        return PlainTextResponse("Bad Request", status_code=400)

    return await call_next(request)
