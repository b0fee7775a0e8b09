"""Interceptors of the standard and dynamic chains."""

from snippetbox.middleware.auth import (
    ANONYMOUS,
    Identity,
    authenticate,
    authenticated_user_id,
    is_authenticated,
    require_authentication,
)
from snippetbox.middleware.csrf import csrf_protect, csrf_token
from snippetbox.middleware.headers import SECURE_HEADERS, secure_headers
from snippetbox.middleware.recovery import recover_panic
from snippetbox.middleware.request_log import log_request
from snippetbox.middleware.session import (
    get_session,
    load_and_save,
    renew_session,
    reset_session,
)

__all__ = [
    "ANONYMOUS",
    "SECURE_HEADERS",
    "Identity",
    "authenticate",
    "authenticated_user_id",
    "csrf_protect",
    "csrf_token",
    "get_session",
    "is_authenticated",
    "load_and_save",
    "log_request",
    "recover_panic",
    "renew_session",
    "reset_session",
    "require_authentication",
    "secure_headers",
]
