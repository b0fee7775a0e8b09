"""Data access for snippets and users.

The pipeline only depends on ``UserStore.find_active``; the rest is used
by the handlers. The in-memory stores back the default application and
the test suite.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Protocol

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from snippetbox.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snippet:
    id: int
    title: str
    content: str
    created: float
    expires: float


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str
    hashed_password: str = field(repr=False)
    created: float
    active: bool = True


class SnippetStore(Protocol):
    async def insert(self, title: str, content: str, expires_days: int) -> int: ...

    async def get(self, snippet_id: int) -> Snippet: ...

    async def latest(self, limit: int = 10) -> list[Snippet]: ...


class UserStore(Protocol):
    async def insert(self, name: str, email: str, password: str) -> int: ...

    async def authenticate(self, email: str, password: str) -> int: ...

    async def get(self, user_id: int) -> User: ...

    async def find_active(self, user_id: int) -> User | None: ...


class MemorySnippetStore:
    """Snippets kept in a dict, hidden once past their expiry."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._snippets: dict[int, Snippet] = {}
        self._next_id = 1

    async def insert(self, title: str, content: str, expires_days: int) -> int:
        now = self._clock()
        snippet_id = self._next_id
        self._next_id += 1
        self._snippets[snippet_id] = Snippet(
            id=snippet_id,
            title=title,
            content=content,
            created=now,
            expires=now + expires_days * 24 * 60 * 60,
        )
        return snippet_id

    async def get(self, snippet_id: int) -> Snippet:
        """Return an unexpired snippet.

        Raises:
            RecordNotFoundError: If no such snippet exists or it has expired.
        """
        snippet = self._snippets.get(snippet_id)
        if snippet is None or snippet.expires <= self._clock():
            raise RecordNotFoundError(f"snippet {snippet_id}")
        return snippet

    async def latest(self, limit: int = 10) -> list[Snippet]:
        now = self._clock()
        live = [s for s in self._snippets.values() if s.expires > now]
        return sorted(live, key=lambda s: s.id, reverse=True)[:limit]


class MemoryUserStore:
    """Users kept in a dict with argon2 password hashes."""

    def __init__(
        self,
        *,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._hasher = hasher or PasswordHasher()
        self._clock = clock
        self._users: dict[int, User] = {}
        self._lock = asyncio.Lock()
        self._next_id = 1

    async def insert(self, name: str, email: str, password: str) -> int:
        """Create a user.

        Raises:
            DuplicateEmailError: If the email address is already registered.
        """
        hashed = await asyncio.to_thread(self._hasher.hash, password)
        async with self._lock:
            normalized = email.lower()
            if any(u.email.lower() == normalized for u in self._users.values()):
                raise DuplicateEmailError(email)
            user_id = self._next_id
            self._next_id += 1
            self._users[user_id] = User(
                id=user_id,
                name=name,
                email=email,
                hashed_password=hashed,
                created=self._clock(),
            )
        logger.info("Created user", extra={"user_id": user_id})
        return user_id

    async def authenticate(self, email: str, password: str) -> int:
        """Return the ID of the active user with these credentials.

        Raises:
            InvalidCredentialsError: If no active user matches.
        """
        normalized = email.lower()
        user = next(
            (u for u in self._users.values() if u.active and u.email.lower() == normalized),
            None,
        )
        if user is None:
            raise InvalidCredentialsError(email)
        try:
            await asyncio.to_thread(self._hasher.verify, user.hashed_password, password)
        except (VerificationError, InvalidHashError) as exc:
            raise InvalidCredentialsError(email) from exc
        return user.id

    async def get(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise RecordNotFoundError(f"user {user_id}")
        return user

    async def find_active(self, user_id: int) -> User | None:
        user = self._users.get(user_id)
        if user is None or not user.active:
            return None
        return user

    async def deactivate(self, user_id: int) -> None:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise RecordNotFoundError(f"user {user_id}")
            self._users[user_id] = replace(user, active=False)

    async def delete(self, user_id: int) -> None:
        async with self._lock:
            if self._users.pop(user_id, None) is None:
                raise RecordNotFoundError(f"user {user_id}")
