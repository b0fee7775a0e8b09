"""Server-side session store.

A session is identified by an opaque random token carried in a cookie
and holds a small map of named values. The store is the only mutable
state shared between requests: every read and write of a session's
values is serialized on a per-token lock, while different sessions
proceed in parallel.
"""

import asyncio
import logging
import math
import re
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from starlette.responses import Response

logger = logging.getLogger(__name__)

# Well-known session keys
AUTH_USER_KEY = "authenticated_user_id"
CSRF_TOKEN_KEY = "csrf_token"
FLASH_KEY = "flash"

# Values that are never carried over to a renewed session
NON_RENEWABLE_KEYS: frozenset[str] = frozenset({CSRF_TOKEN_KEY})

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{43}$")
_REMOVED = object()


def generate_token() -> str:
    """Return a new unguessable session token (256 bits, URL-safe)."""
    return secrets.token_urlsafe(32)


class Status(Enum):
    """Lifecycle state of a session within one request."""

    UNMODIFIED = "unmodified"
    MODIFIED = "modified"
    DESTROYED = "destroyed"


@dataclass(frozen=True)
class CookieDirective:
    """The Set-Cookie a response must carry after a session was saved."""

    name: str
    value: str
    max_age: int
    path: str = "/"
    secure: bool = True
    httponly: bool = True
    samesite: str = "lax"

    @property
    def expires_session(self) -> bool:
        return self.max_age <= 0

    def apply(self, response: Response) -> None:
        """Set this cookie on ``response``."""
        response.set_cookie(
            self.name,
            self.value,
            max_age=self.max_age,
            expires=self.max_age,
            path=self.path,
            secure=self.secure,
            httponly=self.httponly,
            samesite=self.samesite,
        )


@dataclass
class Session:
    """Per-request view of one session.

    Handlers read and write values through the accessors; the changes are
    recorded and merged into the store when the session is saved, so two
    requests touching different keys of the same session do not overwrite
    each other.
    """

    token: str
    values: dict[str, Any] = field(default_factory=dict)
    deadline: float = 0.0
    is_new: bool = True
    status: Status = Status.UNMODIFIED
    _changes: dict[str, Any] = field(default_factory=dict, repr=False)

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def get_int(self, key: str) -> int | None:
        value = self.values.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    def get_str(self, key: str) -> str | None:
        value = self.values.get(key)
        return value if isinstance(value, str) else None

    def exists(self, key: str) -> bool:
        return key in self.values

    def put(self, key: str, value: Any) -> None:
        self.values[key] = value
        self._changes[key] = value
        self.status = Status.MODIFIED

    def pop(self, key: str, default: Any = None) -> Any:
        if key not in self.values:
            return default
        value = self.values.pop(key)
        self._changes[key] = _REMOVED
        self.status = Status.MODIFIED
        return value

    def pop_str(self, key: str) -> str | None:
        value = self.pop(key)
        return value if isinstance(value, str) else None

    def remove(self, key: str) -> None:
        self.pop(key)

    def clear(self) -> None:
        for key in list(self.values):
            self.pop(key)

    def pending_changes(self) -> dict[str, Any]:
        """Changes since load, with removed keys mapped to a sentinel."""
        return dict(self._changes)

    def mark_clean(self) -> None:
        self._changes.clear()


class SessionStore(Protocol):
    """Capability the session middleware needs from a session backend."""

    cookie_name: str

    async def load(self, token: str | None) -> Session: ...

    async def save(self, session: Session) -> CookieDirective | None: ...

    async def renew(self, session: Session) -> Session: ...

    async def destroy(self, session: Session) -> CookieDirective: ...


@dataclass
class _Record:
    values: dict[str, Any]
    deadline: float
    last_seen: float


class MemorySessionStore:
    """In-process session store.

    Args:
        lifetime: Absolute lifetime in seconds, counted from creation or
            the last renewal.
        idle_timeout: Optional idle expiry in seconds, counted from the
            last request that saved the session.
        cookie_name: Name of the session cookie.
        secure: Whether the cookie carries the Secure attribute.
        samesite: SameSite policy, "lax" or "strict".
        sweep_interval: Minimum seconds between sweeps of expired records.
            A sweep runs at the start of a load or save once it is due.
        clock: Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        *,
        lifetime: int = 12 * 60 * 60,
        idle_timeout: int | None = None,
        cookie_name: str = "session",
        secure: bool = True,
        samesite: str = "lax",
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.lifetime = lifetime
        self.idle_timeout = idle_timeout
        self.cookie_name = cookie_name
        self.secure = secure
        self.samesite = samesite
        self._clock = clock
        self._records: dict[str, _Record] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def _lock(self, token: str) -> asyncio.Lock:
        lock = self._locks.get(token)
        if lock is None:
            lock = self._locks[token] = asyncio.Lock()
        return lock

    def _expired(self, record: _Record, now: float) -> bool:
        if now >= record.deadline:
            return True
        return self.idle_timeout is not None and now - record.last_seen >= self.idle_timeout

    def _fresh(self) -> Session:
        return Session(token=generate_token(), deadline=self._clock() + self.lifetime)

    def _cookie(self, token: str, max_age: int) -> CookieDirective:
        return CookieDirective(
            name=self.cookie_name,
            value=token,
            max_age=max_age,
            secure=self.secure,
            samesite=self.samesite,
        )

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, token: object) -> bool:
        return token in self._records

    async def load(self, token: str | None) -> Session:
        """Return the session for ``token``, or a fresh one.

        Absent, malformed, unknown and expired tokens all yield a new empty
        session; expired records are deleted on the way.
        """
        await self._sweep_if_due()
        if not token or not _TOKEN_PATTERN.match(token) or token not in self._records:
            return self._fresh()

        async with self._lock(token):
            record = self._records.get(token)
            expired = record is not None and self._expired(record, self._clock())
            if record is not None and not expired:
                return Session(
                    token=token,
                    values=dict(record.values),
                    deadline=record.deadline,
                    is_new=False,
                )
            if expired:
                logger.debug("Session expired", extra={"deadline": record.deadline})
                self._records.pop(token, None)

        self._locks.pop(token, None)
        return self._fresh()

    async def save(self, session: Session) -> CookieDirective | None:
        """Persist pending changes and return the cookie to send.

        Returns None for a new session that was never modified, and for a
        session whose token was invalidated by a concurrent renewal.
        """
        await self._sweep_if_due()

        if session.status is Status.DESTROYED:
            return self._cookie("", 0)

        if session.is_new and session.status is Status.UNMODIFIED:
            return None

        async with self._lock(session.token):
            now = self._clock()
            record = self._records.get(session.token)

            if record is None:
                if not session.is_new:
                    # Renewed, destroyed or expired by another request
                    logger.debug("Dropping changes to an invalidated session")
                    session.mark_clean()
                    return None
                record = self._records[session.token] = _Record(
                    values={}, deadline=session.deadline, last_seen=now
                )

            for key, value in session.pending_changes().items():
                if value is _REMOVED:
                    record.values.pop(key, None)
                else:
                    record.values[key] = value
            record.last_seen = now

            session.values = dict(record.values)
            session.mark_clean()
            session.is_new = False
            session.status = Status.UNMODIFIED

            return self._cookie(session.token, math.ceil(record.deadline - now))

    async def renew(self, session: Session) -> Session:
        """Move ``session`` to a new token and invalidate the old one.

        Values other than the CSRF token are carried over; the absolute
        lifetime restarts from now. The session object is updated in place
        and returned.
        """
        old_token = session.token

        async with self._lock(old_token):
            self._records.pop(old_token, None)
        self._locks.pop(old_token, None)

        now = self._clock()
        values = {k: v for k, v in session.values.items() if k not in NON_RENEWABLE_KEYS}
        new_token = generate_token()

        async with self._lock(new_token):
            self._records[new_token] = _Record(
                values=dict(values), deadline=now + self.lifetime, last_seen=now
            )

        session.token = new_token
        session.values = values
        session.deadline = now + self.lifetime
        session.is_new = False
        session.mark_clean()
        session.status = Status.MODIFIED

        logger.debug("Session renewed")
        return session

    async def destroy(self, session: Session) -> CookieDirective:
        """Delete ``session`` and return an expiring cookie."""
        async with self._lock(session.token):
            self._records.pop(session.token, None)
        self._locks.pop(session.token, None)

        session.values = {}
        session.mark_clean()
        session.status = Status.DESTROYED
        return self._cookie("", 0)

    async def purge_expired(self) -> int:
        """Delete every expired record. Returns the number removed.

        Locks left behind by tokens that no longer have a record are
        dropped as well.
        """
        now = self._clock()
        removed = 0
        for token in [t for t, r in list(self._records.items()) if self._expired(r, now)]:
            async with self._lock(token):
                record = self._records.get(token)
                if record is not None and self._expired(record, now):
                    del self._records[token]
                    removed += 1
        for token, lock in list(self._locks.items()):
            if token not in self._records and not lock.locked():
                del self._locks[token]
        return removed

    async def _sweep_if_due(self) -> None:
        now = self._clock()
        if now < self._next_sweep:
            return
        self._next_sweep = now + self.sweep_interval
        removed = await self.purge_expired()
        if removed:
            logger.debug(
                "Swept expired sessions", extra={"removed": removed, "remaining": len(self)}
            )

