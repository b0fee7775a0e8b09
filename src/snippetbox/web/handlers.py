"""Route handlers: validate, persist, render."""

import logging
from html import escape

from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response

from snippetbox.exceptions import DuplicateEmailError, InvalidCredentialsError, RecordNotFoundError
from snippetbox.fastapi.router import positive_int_param
from snippetbox.middleware.auth import authenticated_user_id
from snippetbox.middleware.session import (
    get_session,
    put_flash,
    renew_session,
    reset_session,
)
from snippetbox.models import SnippetStore, UserStore
from snippetbox.sessions.store import AUTH_USER_KEY
from snippetbox.web.forms import EMAIL_PATTERN, Form
from snippetbox.web.render import csrf_field, field_error, field_value, human_date, render

logger = logging.getLogger(__name__)

EXPIRY_OPTIONS = ("365", "7", "1")
MIN_PASSWORD_LENGTH = 10


def _see_other(location: str) -> Response:
    return RedirectResponse(location, status_code=303)


class Handlers:
    """The application's endpoints, bound to their data stores."""

    def __init__(self, snippets: SnippetStore, users: UserStore) -> None:
        self.snippets = snippets
        self.users = users

    async def ping(self, request: Request) -> Response:
        return PlainTextResponse("OK")

    async def home(self, request: Request) -> Response:
        latest = await self.snippets.latest()
        if latest:
            rows = "\n".join(
                f'<tr><td><a href="/snippet/{s.id}">{escape(s.title)}</a></td>'
                f"<td>{human_date(s.created)}</td><td>#{s.id}</td></tr>"
                for s in latest
            )
            body = f"<h2>Latest Snippets</h2><table>{rows}</table>"
        else:
            body = "<h2>Latest Snippets</h2><p>There's nothing to see here... yet!</p>"
        return render(request, "Home", body)

    async def about(self, request: Request) -> Response:
        body = "<h2>About</h2><p>Snippetbox is a place to paste and share short text snippets.</p>"
        return render(request, "About", body)

    async def show_snippet(self, request: Request) -> Response:
        snippet_id = positive_int_param(request, "id")
        try:
            snippet = await self.snippets.get(snippet_id)
        except RecordNotFoundError:
            raise HTTPException(status_code=404) from None

        body = (
            '<div class="snippet">'
            f'<div class="metadata"><strong>{escape(snippet.title)}</strong>'
            f"<span>#{snippet.id}</span></div>"
            f"<pre><code>{escape(snippet.content)}</code></pre>"
            f"<div class=\"metadata\"><time>Created: {human_date(snippet.created)}</time>"
            f"<time>Expires: {human_date(snippet.expires)}</time></div>"
            "</div>"
        )
        return render(request, f"Snippet #{snippet.id}", body)

    def _snippet_form(self, request: Request, form: Form | None = None) -> Response:
        expires = form.get("expires") if form is not None else "365"
        options = "".join(
            f'<input type="radio" name="expires" value="{days}"'
            f'{" checked" if expires == days else ""}> {days} day(s) '
            for days in EXPIRY_OPTIONS
        )
        body = (
            '<form action="/snippet/create" method="POST">'
            f"{csrf_field(request)}"
            f'<div><label>Title:</label>{field_error(form, "title")}'
            f'<input type="text" name="title" value="{field_value(form, "title")}"></div>'
            f'<div><label>Content:</label>{field_error(form, "content")}'
            f'<textarea name="content">{field_value(form, "content")}</textarea></div>'
            f'<div><label>Delete in:</label>{field_error(form, "expires")}{options}</div>'
            '<div><input type="submit" value="Publish snippet"></div>'
            "</form>"
        )
        return render(request, "Create a New Snippet", body)

    async def create_snippet_form(self, request: Request) -> Response:
        return self._snippet_form(request)

    async def create_snippet(self, request: Request) -> Response:
        form = Form(await request.form())
        form.required("title", "content", "expires")
        form.max_length("title", 100)
        form.permitted_values("expires", EXPIRY_OPTIONS)
        if not form.valid:
            return self._snippet_form(request, form)

        snippet_id = await self.snippets.insert(
            form.get("title"), form.get("content"), int(form.get("expires"))
        )
        put_flash(request, "Snippet successfully created!")
        return _see_other(f"/snippet/{snippet_id}")

    def _signup_form(self, request: Request, form: Form | None = None) -> Response:
        body = (
            '<form action="/user/signup" method="POST" novalidate>'
            f"{csrf_field(request)}"
            f'<div><label>Name:</label>{field_error(form, "name")}'
            f'<input type="text" name="name" value="{field_value(form, "name")}"></div>'
            f'<div><label>Email:</label>{field_error(form, "email")}'
            f'<input type="email" name="email" value="{field_value(form, "email")}"></div>'
            f'<div><label>Password:</label>{field_error(form, "password")}'
            '<input type="password" name="password"></div>'
            '<div><input type="submit" value="Signup"></div>'
            "</form>"
        )
        return render(request, "Signup", body)

    async def signup_user_form(self, request: Request) -> Response:
        return self._signup_form(request)

    async def signup_user(self, request: Request) -> Response:
        form = Form(await request.form())
        form.required("name", "email", "password")
        form.max_length("name", 255)
        form.max_length("email", 255)
        form.matches_pattern("email", EMAIL_PATTERN)
        form.min_length("password", MIN_PASSWORD_LENGTH)
        if not form.valid:
            return self._signup_form(request, form)

        try:
            await self.users.insert(form.get("name"), form.get("email"), form.get("password"))
        except DuplicateEmailError:
            form.add_error("email", "Address is already in use")
            return self._signup_form(request, form)

        put_flash(request, "Your signup was successful. Please log in.")
        return _see_other("/user/login")

    def _login_form(self, request: Request, form: Form | None = None) -> Response:
        generic = ""
        if form is not None and "generic" in form.errors:
            generic = f'<div class="error">{escape(form.errors["generic"])}</div>'
        body = (
            '<form action="/user/login" method="POST" novalidate>'
            f"{csrf_field(request)}{generic}"
            '<div><label>Email:</label>'
            f'<input type="email" name="email" value="{field_value(form, "email")}"></div>'
            '<div><label>Password:</label><input type="password" name="password"></div>'
            '<div><input type="submit" value="Login"></div>'
            "</form>"
        )
        return render(request, "Login", body)

    async def login_user_form(self, request: Request) -> Response:
        return self._login_form(request)

    async def login_user(self, request: Request) -> Response:
        form = Form(await request.form())
        try:
            user_id = await self.users.authenticate(form.get("email"), form.get("password"))
        except InvalidCredentialsError:
            form.add_error("generic", "Email or Password is incorrect")
            return self._login_form(request, form)

        session = await renew_session(request)
        session.put(AUTH_USER_KEY, user_id)
        logger.info("User logged in", extra={"user_id": user_id})
        return _see_other("/snippet/create")

    async def logout_user(self, request: Request) -> Response:
        await reset_session(request)
        put_flash(request, "You've been logged out successfully!")
        return _see_other("/")

    async def user_profile(self, request: Request) -> Response:
        user_id = authenticated_user_id(request)
        try:
            user = await self.users.get(user_id)
        except RecordNotFoundError:
            get_session(request).remove(AUTH_USER_KEY)
            return _see_other("/user/login")

        body = (
            "<h2>User Profile</h2><table>"
            f"<tr><th>Name</th><td>{escape(user.name)}</td></tr>"
            f"<tr><th>Email</th><td>{escape(user.email)}</td></tr>"
            f"<tr><th>Joined</th><td>{human_date(user.created)}</td></tr>"
            "</table>"
        )
        return render(request, "Profile", body)
