"""Session attachment middleware and request-scoped session accessors."""

import logging
from collections.abc import Callable
from typing import Any

from starlette.requests import Request
from starlette.responses import Response

from snippetbox.exceptions import SessionStoreError
from snippetbox.sessions.store import FLASH_KEY, Session, SessionStore

logger = logging.getLogger(__name__)


def load_and_save(store: SessionStore) -> Callable[..., Any]:
    """Build the interceptor that attaches a session to each request.

    The session named by the request cookie is loaded before the rest of
    the chain runs and saved afterwards, setting the response cookie when
    the store asks for one. A store failure while loading is treated as
    "no session": the request continues with a fresh, empty session.
    Changes are saved even when the handler raises, though no cookie can
    be set in that case.
    """

    async def load_and_save(request: Request, call_next: Callable[..., Any]) -> Response:
        token = request.cookies.get(store.cookie_name)
        try:
            session = await store.load(token)
        except SessionStoreError as exc:
            logger.warning(
                "Session store unavailable, continuing with a fresh session",
                extra={"path": request.url.path, "error": str(exc)},
            )
            session = await store.load(None)

        request.state.session = session
        request.state.session_store = store

        try:
            response = await call_next(request)
        except Exception:
            # Changes made before the handler bailed out still count
            await store.save(request.state.session)
            raise

        directive = await store.save(request.state.session)
        if directive is not None:
            directive.apply(response)
        return response

    return load_and_save


def get_session(request: Request) -> Session:
    """Return the session attached to ``request``.

    Raises:
        RuntimeError: If the session middleware did not run for this request.
    """
    session = getattr(request.state, "session", None)
    if session is None:
        raise RuntimeError(f"No session attached to {request.method} {request.url.path}")
    return session


async def renew_session(request: Request) -> Session:
    """Move the request's session to a new token (used on privilege change)."""
    store: SessionStore = request.state.session_store
    return await store.renew(get_session(request))


async def reset_session(request: Request) -> Session:
    """Delete the request's session and attach a fresh, empty one.

    The old token stops working at once; the new session is only stored,
    and its cookie only set, if something is put into it.
    """
    store: SessionStore = request.state.session_store
    await store.destroy(get_session(request))
    request.state.session = await store.load(None)
    return request.state.session


def put_flash(request: Request, message: str) -> None:
    get_session(request).put(FLASH_KEY, message)


def pop_flash(request: Request) -> str | None:
    return get_session(request).pop_str(FLASH_KEY)
