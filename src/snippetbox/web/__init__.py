"""HTML handlers, form validation and page rendering."""

from snippetbox.web.forms import Form
from snippetbox.web.handlers import Handlers

__all__ = ["Form", "Handlers"]
