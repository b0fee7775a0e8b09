"""Application factory.

Builds the session store, the two middleware chains and the fixed route
table once, then hands them to a FastAPI instance. Nothing here is
mutated after ``create_app`` returns.
"""

import logging

from fastapi import FastAPI

from snippetbox.config import Settings
from snippetbox.core.chain import Chain
from snippetbox.core.routing import RouteTable
from snippetbox.fastapi.router import PipelineMiddleware, install_routes
from snippetbox.middleware.auth import UserLookup, authenticate, require_authentication
from snippetbox.middleware.csrf import csrf_protect
from snippetbox.middleware.headers import secure_headers
from snippetbox.middleware.recovery import recover_panic
from snippetbox.middleware.request_log import log_request
from snippetbox.middleware.session import load_and_save
from snippetbox.models import MemorySnippetStore, MemoryUserStore, SnippetStore, UserStore
from snippetbox.sessions.store import MemorySessionStore, SessionStore
from snippetbox.web.handlers import Handlers

logger = logging.getLogger(__name__)


def standard_chain() -> Chain:
    """Interceptors applied to every request: recovery, logging, headers."""
    return Chain(recover_panic, log_request, secure_headers)


def dynamic_chain(sessions: SessionStore, users: UserLookup) -> Chain:
    """Interceptors for session-aware routes: session, CSRF, authentication."""
    return Chain(load_and_save(sessions), csrf_protect, authenticate(users))


def session_store_from_settings(settings: Settings) -> MemorySessionStore:
    return MemorySessionStore(
        lifetime=settings.session_lifetime,
        idle_timeout=settings.session_idle_timeout,
        cookie_name=settings.session_cookie_name,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        sweep_interval=settings.session_sweep_interval,
    )


def build_routes(handlers: Handlers, dynamic: Chain) -> RouteTable:
    """The application's route table."""
    protected = dynamic.append(require_authentication)

    table = RouteTable()
    table.get("/", handlers.home, chain=dynamic)
    table.get("/snippet/create", handlers.create_snippet_form, chain=protected)
    table.post("/snippet/create", handlers.create_snippet, chain=protected)
    table.get("/snippet/:id", handlers.show_snippet, chain=dynamic)

    table.get("/user/signup", handlers.signup_user_form, chain=dynamic)
    table.post("/user/signup", handlers.signup_user, chain=dynamic)
    table.get("/user/login", handlers.login_user_form, chain=dynamic)
    table.post("/user/login", handlers.login_user, chain=dynamic)
    table.post("/user/logout", handlers.logout_user, chain=protected)
    table.get("/user/profile", handlers.user_profile, chain=protected)

    table.get("/ping", handlers.ping)
    table.get("/about", handlers.about, chain=dynamic)
    return table


def create_app(
    settings: Settings | None = None,
    *,
    users: UserStore | None = None,
    snippets: SnippetStore | None = None,
    sessions: SessionStore | None = None,
) -> FastAPI:
    """Build the snippetbox application.

    Args:
        settings: Runtime settings; read from the environment when omitted.
        users: User store; an empty in-memory store when omitted.
        snippets: Snippet store; an empty in-memory store when omitted.
        sessions: Session store; an in-memory store configured from
            ``settings`` when omitted.

    Returns:
        A FastAPI application with the standard chain around every request
        and the dynamic chain around session-aware routes.

    Raises:
        PatternParseError: If a route pattern is malformed.
        DuplicateRouteError: If two routes share a method and pattern.
        MiddlewareValidationError: If a chain member is not async.
    """
    settings = settings or Settings()
    users = users if users is not None else MemoryUserStore()
    snippets = snippets if snippets is not None else MemorySnippetStore()
    sessions = sessions if sessions is not None else session_store_from_settings(settings)

    application = FastAPI(
        title="Snippetbox",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )

    table = build_routes(Handlers(snippets, users), dynamic_chain(sessions, users))
    install_routes(application, table)
    application.add_middleware(PipelineMiddleware, chain=standard_chain())

    logger.info(
        "Application ready",
        extra={"routes": len(table), "session_cookie": settings.session_cookie_name},
    )
    return application
