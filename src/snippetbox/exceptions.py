"""Exception hierarchy for the snippetbox application."""


class SnippetboxError(Exception):
    """Base exception for all snippetbox errors.

    Catching this exception will catch every error raised by the
    snippetbox package, both at startup and during request handling.

    Example:
        try:
            app = create_app(settings)
        except SnippetboxError as e:
            logger.error(f"Failed to build application: {e}")
    """


class PatternParseError(SnippetboxError):
    """Raised when a route pattern has invalid syntax.

    Raised at startup while the route table is being built.

    Examples of invalid syntax:
        - Missing leading slash: snippet/:id
        - Trailing slash: /snippet/
        - Invalid parameter names: /snippet/:1d, /snippet/:

    Example:
        PatternParseError("Invalid segment ':' in pattern '/snippet/:'")
    """


class DuplicateRouteError(SnippetboxError):
    """Raised when two route entries resolve to the same method+pattern.

    Example:
        DuplicateRouteError("Duplicate route: GET /snippet/:id")
    """


class MiddlewareValidationError(SnippetboxError):
    """Raised when a middleware chain is misconfigured.

    This exception is raised when:
        - A chain member is not callable
        - A chain member is a sync function

    Example:
        MiddlewareValidationError(
            "Middleware at index 1 must be async, got sync function log_request"
        )
    """


class SessionStoreError(SnippetboxError):
    """Raised when the session backend is unreachable or holds corrupt data.

    The session middleware treats this as "no valid session" when loading.
    """


class UserStoreError(SnippetboxError):
    """Raised when the user backend cannot be queried."""


class RecordNotFoundError(SnippetboxError):
    """Raised when no matching record exists in a store."""


class InvalidCredentialsError(SnippetboxError):
    """Raised when an email/password pair does not match an active user."""


class DuplicateEmailError(SnippetboxError):
    """Raised when signing up with an email address already in use."""
