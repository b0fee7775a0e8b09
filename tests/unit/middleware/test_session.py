"""Tests for the session attach/save interceptor and its accessors."""

import pytest
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from snippetbox.exceptions import SessionStoreError
from snippetbox.middleware.session import (
    get_session,
    load_and_save,
    pop_flash,
    put_flash,
    renew_session,
    reset_session,
)
from snippetbox.sessions.store import FLASH_KEY, MemorySessionStore, Session
from tests.conftest import make_request


async def untouched(request: Request) -> Response:
    get_session(request)
    return PlainTextResponse("ok")


async def flashing(request: Request) -> Response:
    put_flash(request, "saved!")
    return PlainTextResponse("ok")


def with_cookie(token: str) -> Request:
    return make_request(headers={"Cookie": f"session={token}"})


class FailingStore(MemorySessionStore):
    async def load(self, token: str | None) -> Session:
        if token is not None:
            raise SessionStoreError("backend down")
        return await super().load(token)


class TestLoadAndSave:
    async def test_unmodified_fresh_session_sets_no_cookie(
        self, session_store: MemorySessionStore
    ) -> None:
        response = await load_and_save(session_store)(make_request(), untouched)

        assert "set-cookie" not in response.headers
        assert len(session_store) == 0

    async def test_modified_session_sets_cookie(self, session_store: MemorySessionStore) -> None:
        request = make_request()
        response = await load_and_save(session_store)(request, flashing)

        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"session={request.state.session.token};")
        assert "HttpOnly" in cookie
        assert "Secure" in cookie
        assert request.state.session.token in session_store

    async def test_cookie_selects_existing_session(
        self, session_store: MemorySessionStore
    ) -> None:
        first = make_request()
        await load_and_save(session_store)(first, flashing)
        token = first.state.session.token

        second = with_cookie(token)
        seen: list[str | None] = []

        async def read_flash(request: Request) -> Response:
            seen.append(pop_flash(request))
            return PlainTextResponse("ok")

        await load_and_save(session_store)(second, read_flash)

        assert seen == ["saved!"]
        assert second.state.session.token == token

    async def test_store_failure_falls_back_to_fresh_session(self) -> None:
        store = FailingStore(lifetime=60)
        request = with_cookie("a" * 43)

        response = await load_and_save(store)(request, untouched)

        assert response.status_code == 200
        assert request.state.session.is_new

    async def test_renewal_in_handler_sends_new_cookie(
        self, session_store: MemorySessionStore
    ) -> None:
        first = make_request()
        await load_and_save(session_store)(first, flashing)
        old_token = first.state.session.token

        async def renew(request: Request) -> Response:
            await renew_session(request)
            return PlainTextResponse("ok")

        second = with_cookie(old_token)
        response = await load_and_save(session_store)(second, renew)

        new_token = second.state.session.token
        assert new_token != old_token
        assert response.headers["set-cookie"].startswith(f"session={new_token};")
        assert old_token not in session_store

    async def test_changes_are_saved_when_handler_raises(
        self, session_store: MemorySessionStore
    ) -> None:
        first = make_request()
        await load_and_save(session_store)(first, flashing)
        token = first.state.session.token

        async def flash_then_fail(request: Request) -> Response:
            pop_flash(request)
            get_session(request).put("last_path", "/snippet/999")
            raise HTTPException(status_code=404)

        with pytest.raises(HTTPException):
            await load_and_save(session_store)(with_cookie(token), flash_then_fail)

        stored = await session_store.load(token)
        assert not stored.exists(FLASH_KEY)
        assert stored.get("last_path") == "/snippet/999"

    async def test_reset_replaces_session_with_fresh_one(
        self, session_store: MemorySessionStore
    ) -> None:
        first = make_request()
        await load_and_save(session_store)(first, flashing)
        old_token = first.state.session.token

        async def reset(request: Request) -> Response:
            session = await reset_session(request)
            assert session.is_new
            assert session.values == {}
            put_flash(request, "bye")
            return PlainTextResponse("ok")

        second = with_cookie(old_token)
        response = await load_and_save(session_store)(second, reset)

        new_token = second.state.session.token
        assert new_token != old_token
        assert old_token not in session_store
        assert response.headers["set-cookie"].startswith(f"session={new_token};")
        assert (await session_store.load(new_token)).values == {FLASH_KEY: "bye"}


def test_get_session_without_middleware_raises() -> None:
    with pytest.raises(RuntimeError, match="No session attached to GET /"):
        get_session(make_request())
