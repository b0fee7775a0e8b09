"""Shared fixtures for concurrency integration tests.

Each test drives many requests through one application instance at once,
using separate clients so that every simulated browser has its own cookie
jar.
"""

import httpx
import pytest
from fastapi import FastAPI

from snippetbox.models import MemoryUserStore
from tests.conftest import VALID_PASSWORD, login, new_client

CONCURRENT_REQUESTS = 20

ACCOUNTS = {
    1: "dupe@example.com",
    2: "bob@example.com",
    3: "carol@example.com",
}


@pytest.fixture
async def accounts(users: MemoryUserStore) -> dict[int, str]:
    """User ID to email for three registered users."""
    await users.insert("Bob", ACCOUNTS[2], VALID_PASSWORD)
    await users.insert("Carol", ACCOUNTS[3], VALID_PASSWORD)
    return ACCOUNTS


async def logged_in_token(app: FastAPI, email: str) -> str:
    """Log in from a fresh browser and return its session token."""
    async with new_client(app) as browser:
        response = await login(browser, email)
        assert response.status_code == 303
        return browser.cookies["session"]


def pinned(app: FastAPI, token: str) -> httpx.AsyncClient:
    return new_client(app, token)
