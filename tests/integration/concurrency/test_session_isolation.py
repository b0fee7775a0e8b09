"""Session and identity isolation under concurrent load.

Requests share one application, one session store and one user store. A
response must never carry another browser's identity, and requests that
share a session must leave it in a consistent state.
"""

import asyncio
import re

import httpx
from fastapi import FastAPI

from snippetbox.sessions.store import MemorySessionStore
from tests.conftest import VALID_PASSWORD, extract_csrf_token, new_client

from .conftest import CONCURRENT_REQUESTS, logged_in_token, pinned

_SESSION_COOKIE = re.compile(r"session=([A-Za-z0-9_-]+);")


async def _get(app: FastAPI, token: str, path: str) -> httpx.Response:
    async with pinned(app, token) as browser:
        return await browser.get(path)


async def _post(app: FastAPI, token: str, path: str, data: dict[str, str]) -> httpx.Response:
    async with pinned(app, token) as browser:
        return await browser.post(path, data=data)


class TestIdentityIsolation:
    """Authenticated responses always belong to the requesting browser."""

    async def test_profiles_never_cross(self, app: FastAPI, accounts: dict[int, str]) -> None:
        tokens = {
            user_id: await logged_in_token(app, email) for user_id, email in accounts.items()
        }

        plan = [list(accounts)[i % len(accounts)] for i in range(CONCURRENT_REQUESTS)]
        responses = await asyncio.gather(
            *(_get(app, tokens[user_id], "/user/profile") for user_id in plan)
        )

        for user_id, response in zip(plan, responses, strict=True):
            assert response.status_code == 200
            assert accounts[user_id] in response.text
            for other_id, other_email in accounts.items():
                if other_id != user_id:
                    assert other_email not in response.text

    async def test_anonymous_and_authenticated_mixed(
        self, app: FastAPI, accounts: dict[int, str]
    ) -> None:
        token = await logged_in_token(app, accounts[2])

        async def anonymous() -> httpx.Response:
            async with new_client(app) as browser:
                return await browser.get("/user/profile")

        plan = [i % 2 == 0 for i in range(CONCURRENT_REQUESTS)]
        responses = await asyncio.gather(
            *(_get(app, token, "/user/profile") if auth else anonymous() for auth in plan)
        )

        for auth, response in zip(plan, responses, strict=True):
            if auth:
                assert response.status_code == 200
                assert accounts[2] in response.text
            else:
                assert response.status_code == 303
                assert response.headers["location"] == "/user/login"


class TestSharedSession:
    """Concurrent requests presenting the same session cookie."""

    async def test_concurrent_logins_from_one_session(
        self, app: FastAPI, session_store: MemorySessionStore
    ) -> None:
        async with new_client(app) as browser:
            page = await browser.get("/user/login")
            shared = browser.cookies["session"]
        form = {
            "email": "dupe@example.com",
            "password": VALID_PASSWORD,
            "csrf_token": extract_csrf_token(page.text),
        }

        responses = await asyncio.gather(
            *(_post(app, shared, "/user/login", form) for _ in range(CONCURRENT_REQUESTS))
        )

        # A request that loads the session after another login renewed it
        # sees a fresh session with no CSRF token and is rejected.
        assert {r.status_code for r in responses} <= {303, 400}
        renewed = [
            _SESSION_COOKIE.match(r.headers["set-cookie"]).group(1)
            for r in responses
            if r.status_code == 303
        ]
        assert renewed
        assert len(set(renewed)) == len(renewed)
        assert shared not in renewed
        assert shared not in session_store

        profiles = await asyncio.gather(*(_get(app, t, "/user/profile") for t in renewed))
        assert all(p.status_code == 200 for p in profiles)
        assert (await _get(app, shared, "/user/profile")).status_code == 303

    async def test_concurrent_snippet_creation(self, app: FastAPI) -> None:
        token = await logged_in_token(app, "dupe@example.com")
        page = await _get(app, token, "/snippet/create")
        csrf = extract_csrf_token(page.text)

        async def create(n: int) -> httpx.Response:
            data = {
                "title": f"Snippet {n}",
                "content": f"body {n}",
                "expires": "7",
                "csrf_token": csrf,
            }
            return await _post(app, token, "/snippet/create", data)

        responses = await asyncio.gather(*(create(n) for n in range(CONCURRENT_REQUESTS)))

        locations = [r.headers["location"] for r in responses]
        assert all(r.status_code == 303 for r in responses)
        assert len(set(locations)) == CONCURRENT_REQUESTS

        shown = await asyncio.gather(*(_get(app, token, loc) for loc in locations))
        titles = {re.search(r"<strong>(Snippet \d+)</strong>", s.text).group(1) for s in shown}
        assert titles == {f"Snippet {n}" for n in range(CONCURRENT_REQUESTS)}

    async def test_concurrent_form_pages_share_one_csrf_token(self, app: FastAPI) -> None:
        async with new_client(app) as browser:
            await browser.get("/user/signup")
            token = browser.cookies["session"]
            first = extract_csrf_token((await browser.get("/user/signup")).text)

        pages = await asyncio.gather(
            *(_get(app, token, "/user/signup") for _ in range(CONCURRENT_REQUESTS))
        )
        assert {extract_csrf_token(p.text) for p in pages} == {first}
