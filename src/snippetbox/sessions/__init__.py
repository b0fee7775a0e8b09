"""Session state keyed by an opaque cookie token."""

from snippetbox.sessions.store import (
    AUTH_USER_KEY,
    CSRF_TOKEN_KEY,
    FLASH_KEY,
    CookieDirective,
    MemorySessionStore,
    Session,
    SessionStore,
    Status,
)

__all__ = [
    "AUTH_USER_KEY",
    "CSRF_TOKEN_KEY",
    "FLASH_KEY",
    "CookieDirective",
    "MemorySessionStore",
    "Session",
    "SessionStore",
    "Status",
]
