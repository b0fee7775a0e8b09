"""Shared pytest fixtures for snippetbox tests."""

import re
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import urlencode

import httpx
import pytest
from argon2 import PasswordHasher
from fastapi import FastAPI
from starlette.requests import Request

from snippetbox import Settings, create_app
from snippetbox.models import MemorySnippetStore, MemoryUserStore
from snippetbox.sessions.store import MemorySessionStore

BASE_URL = "https://testserver"
VALID_PASSWORD = "validPa$$word"

_CSRF_INPUT = re.compile(r'<input type="hidden" name="csrf_token" value="([^"]+)">')


def extract_csrf_token(body: str) -> str:
    """Pull the CSRF token out of a rendered form."""
    match = _CSRF_INPUT.search(body)
    assert match, "no csrf_token field in page"
    return match.group(1)


def make_request(
    method: str = "GET",
    path: str = "/",
    *,
    headers: dict[str, str] | None = None,
    body: bytes = b"",
) -> Request:
    """Build a bare Starlette request for calling interceptors directly."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    sent = False

    async def receive() -> dict[str, Any]:
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "https",
        "path": path,
        "root_path": "",
        "query_string": b"",
        "headers": raw_headers,
        "server": ("testserver", 443),
        "client": ("127.0.0.1", 50000),
    }
    return Request(scope, receive)


def form_request(fields: dict[str, str], *, method: str = "POST", path: str = "/") -> Request:
    return make_request(
        method,
        path,
        headers={"content-type": "application/x-www-form-urlencoded"},
        body=urlencode(fields).encode(),
    )


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_store(settings: Settings) -> MemorySessionStore:
    return MemorySessionStore(
        lifetime=settings.session_lifetime,
        cookie_name=settings.session_cookie_name,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


@pytest.fixture
async def users() -> MemoryUserStore:
    """User store seeded with one account, dupe@example.com."""
    store = MemoryUserStore(hasher=PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))
    await store.insert("Alice", "dupe@example.com", VALID_PASSWORD)
    return store


@pytest.fixture
async def snippets() -> MemorySnippetStore:
    """Snippet store seeded with snippet #1."""
    store = MemorySnippetStore()
    await store.insert(
        "An old silent pond", "An old silent pond...\nA frog jumps into the pond,", 365
    )
    return store


@pytest.fixture
def app(
    settings: Settings,
    users: MemoryUserStore,
    snippets: MemorySnippetStore,
    session_store: MemorySessionStore,
) -> FastAPI:
    return create_app(settings, users=users, snippets=snippets, sessions=session_store)


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as c:
        yield c


def new_client(app: FastAPI, session_token: str | None = None) -> httpx.AsyncClient:
    """A client with an empty cookie jar, optionally pinned to a session cookie."""
    headers = {"Cookie": f"session={session_token}"} if session_token else {}
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url=BASE_URL, headers=headers
    )


async def login(client: httpx.AsyncClient, email: str = "dupe@example.com") -> httpx.Response:
    """Log ``client`` in through the login form."""
    page = await client.get("/user/login")
    token = extract_csrf_token(page.text)
    return await client.post(
        "/user/login",
        data={"email": email, "password": VALID_PASSWORD, "csrf_token": token},
    )
