"""Minimal server-side HTML rendering."""

from datetime import UTC, datetime
from html import escape

from starlette.requests import Request
from starlette.responses import HTMLResponse

from snippetbox.middleware.auth import is_authenticated
from snippetbox.middleware.csrf import csrf_token
from snippetbox.middleware.session import pop_flash
from snippetbox.web.forms import Form


def human_date(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=UTC).strftime("%d %b %Y at %H:%M")


def csrf_field(request: Request) -> str:
    return f'<input type="hidden" name="csrf_token" value="{escape(csrf_token(request))}">'


def field_error(form: Form | None, name: str) -> str:
    if form is None or name not in form.errors:
        return ""
    return f'<label class="error">{escape(form.errors[name])}</label>'


def field_value(form: Form | None, name: str) -> str:
    return escape(form.get(name)) if form is not None else ""


def _nav(request: Request) -> str:
    links = ['<a href="/">Home</a>', '<a href="/about">About</a>']
    if is_authenticated(request):
        links.append('<a href="/snippet/create">Create snippet</a>')
        links.append('<a href="/user/profile">Profile</a>')
        links.append(
            f'<form action="/user/logout" method="POST">{csrf_field(request)}'
            "<button>Logout</button></form>"
        )
    else:
        links.append('<a href="/user/signup">Signup</a>')
        links.append('<a href="/user/login">Login</a>')
    return "<nav>" + "\n".join(links) + "</nav>"


def render(request: Request, title: str, body: str, *, status_code: int = 200) -> HTMLResponse:
    """Wrap ``body`` in the base layout and return it as a response."""
    flash = pop_flash(request)
    flash_html = f'<div class="flash">{escape(flash)}</div>' if flash else ""
    page = (
        "<!doctype html>\n"
        '<html lang="en">\n'
        f"<head><meta charset=\"utf-8\"><title>{escape(title)} - Snippetbox</title></head>\n"
        "<body>\n"
        '<header><h1><a href="/">Snippetbox</a></h1></header>\n'
        f"{_nav(request)}\n"
        f"<main>{flash_html}{body}</main>\n"
        f"<footer>Powered by Snippetbox in {datetime.now(tz=UTC).year}</footer>\n"
        "</body>\n</html>\n"
    )
    return HTMLResponse(page, status_code=status_code)
