"""Middleware chain primitives.

Chain is an immutable ordered sequence of interceptors; compose folds one
around a terminal handler. An interceptor is an
``async def middleware(request, call_next) -> Response``; it may call the
next stage, return its own response and stop, or do both around the call.
"""

import inspect
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from snippetbox.exceptions import MiddlewareValidationError


def validate_middleware(
    middleware: Sequence[Callable[..., Any]],
    *,
    source: str = "",
) -> None:
    """Check that every chain member is an async callable.

    Raises:
        MiddlewareValidationError: On the first non-callable or sync member.
    """
    prefix = f"{source}: " if source else ""
    for i, mw in enumerate(middleware):
        if not callable(mw):
            raise MiddlewareValidationError(f"{prefix}Non-callable middleware at index {i}")
        if not inspect.iscoroutinefunction(mw):
            raise MiddlewareValidationError(
                f"{prefix}Middleware at index {i} must be async, "
                f"got sync function {getattr(mw, '__name__', repr(mw))}"
            )


@dataclass(frozen=True, init=False)
class Chain:
    """An ordered, immutable sequence of interceptors.

    The first interceptor is the outermost: it runs first on the way in
    and last on the way out. ``append`` returns a new chain and never touches
    the receiver, so a base chain can be shared between routes.

    Example:
        dynamic = Chain(load_and_save, csrf_protect, authenticate)
        protected = dynamic.append(require_authentication)
        handler = protected.then(create_snippet)
    """

    middleware: tuple[Callable[..., Any], ...] = ()

    def __init__(self, *middleware: Callable[..., Any]) -> None:
        validate_middleware(middleware, source="Chain")
        object.__setattr__(self, "middleware", tuple(middleware))

    def append(self, *middleware: Callable[..., Any]) -> "Chain":
        """Return a new chain with ``middleware`` added innermost."""
        return Chain(*self.middleware, *middleware)

    def then(self, handler: Callable[..., Any]) -> Callable[..., Any]:
        """Wrap ``handler`` with this chain."""
        return compose(handler, self.middleware)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(getattr(mw, "__name__", repr(mw)) for mw in self.middleware)

    def __iter__(self) -> Iterator[Callable[..., Any]]:
        return iter(self.middleware)

    def __len__(self) -> int:
        return len(self.middleware)


def compose(
    handler: Callable[..., Any],
    stages: Sequence[Callable[..., Any]],
) -> Callable[..., Any]:
    """Fold ``stages`` around ``handler`` into a single callable.

    ``stages[0]`` ends up outermost. Nothing runs until the returned
    callable is awaited, and an empty ``stages`` gives back ``handler``
    itself.

    Args:
        handler: Terminal ``async (request) -> response``.
        stages: Interceptors, outermost first.

    Returns:
        An ``async (request) -> response`` running the whole pipeline.
    """
    pipeline = handler
    for stage in reversed(stages):
        pipeline = _link(stage, pipeline)
    return pipeline


def _link(stage: Callable[..., Any], downstream: Callable[..., Any]) -> Callable[..., Any]:
    """Bind one interceptor to whatever follows it."""

    async def linked(request: Any) -> Any:
        return await stage(request, downstream)

    # Shows up in tracebacks as e.g. csrf_protect>authenticate>show_snippet
    linked.__name__ = linked.__qualname__ = (
        f"{getattr(stage, '__name__', 'stage')}>{getattr(downstream, '__name__', 'handler')}"
    )
    return linked
