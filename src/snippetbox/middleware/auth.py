"""Authentication state propagation.

``authenticate`` resolves who the request belongs to once per request and
stores the result on ``request.state.identity``. ``require_authentication``
guards the routes that need a logged-in user.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from snippetbox.exceptions import UserStoreError
from snippetbox.middleware.session import get_session
from snippetbox.sessions.store import AUTH_USER_KEY

logger = logging.getLogger(__name__)

LOGIN_PATH = "/user/login"


@dataclass(frozen=True)
class Identity:
    """Who a request acts as: a user ID, or None for anonymous."""

    user_id: int | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


ANONYMOUS = Identity()


class UserLookup(Protocol):
    async def find_active(self, user_id: int) -> Any | None: ...


def authenticate(users: UserLookup) -> Callable[..., Any]:
    """Build the interceptor that resolves the request's identity.

    The user ID stored in the session is only trusted after the user store
    confirms an active account with that ID. A stale ID is removed from the
    session and the request proceeds as anonymous; so does a request whose
    lookup fails because the user store is unavailable.
    """

    async def authenticate(request: Request, call_next: Callable[..., Any]) -> Response:
        request.state.identity = await _resolve_identity(request, users)
        return await call_next(request)

    return authenticate


async def _resolve_identity(request: Request, users: UserLookup) -> Identity:
    session = get_session(request)
    user_id = session.get_int(AUTH_USER_KEY)

    if user_id is None:
        if session.exists(AUTH_USER_KEY):
            session.remove(AUTH_USER_KEY)
        return ANONYMOUS

    try:
        user = await users.find_active(user_id)
    except UserStoreError as exc:
        logger.warning(
            "User lookup failed, treating request as anonymous",
            extra={"path": request.url.path, "error": str(exc)},
        )
        return ANONYMOUS

    if user is None:
        logger.info("Clearing session for missing or inactive user", extra={"user_id": user_id})
        session.remove(AUTH_USER_KEY)
        return ANONYMOUS

    return Identity(user_id=user_id)


def get_identity(request: Request) -> Identity:
    return getattr(request.state, "identity", ANONYMOUS)


def is_authenticated(request: Request) -> bool:
    return get_identity(request).is_authenticated


def authenticated_user_id(request: Request) -> int | None:
    return get_identity(request).user_id


async def require_authentication(request: Request, call_next: Callable[..., Any]) -> Response:
    """Redirect anonymous requests to the login page.

    Responses that pass through here are never stored by shared caches.
    """
    if not is_authenticated(request):
        response: Response = RedirectResponse(LOGIN_PATH, status_code=303)
    else:
        response = await call_next(request)
    response.headers["Cache-Control"] = "no-store"
    return response
