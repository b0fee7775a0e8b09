"""Fixed route table.

Entries are registered once at startup, validated as they are added, and
frozen into an immutable, priority-ordered tuple before being installed
on the application.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from snippetbox.core.chain import Chain
from snippetbox.core.parser import PathSegment, parse_pattern, segments_to_fastapi_path
from snippetbox.exceptions import DuplicateRouteError

logger = logging.getLogger(__name__)

ALLOWED_METHODS: frozenset[str] = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True)
class RouteEntry:
    """One (method, pattern, chain-wrapped handler) registration."""

    method: str
    pattern: str
    handler: Callable[..., Any]
    chain: Chain
    segments: tuple[PathSegment, ...]

    @property
    def path(self) -> str:
        """The pattern in FastAPI path syntax, e.g. /snippet/{id}."""
        return segments_to_fastapi_path(list(self.segments))

    @property
    def shape(self) -> tuple[str, ...]:
        """The pattern with parameter names erased, for conflict detection."""
        return tuple(":" if s.is_parameter else s.name for s in self.segments)

    @property
    def name(self) -> str:
        return getattr(self.handler, "__name__", "handler")


class RouteTable:
    """Startup-built mapping of (method, pattern) to handler and chain.

    Example:
        table = RouteTable()
        table.get("/snippet/:id", show_snippet, chain=dynamic)
        table.post("/snippet/create", create_snippet, chain=dynamic.append(require_auth))
        entries = table.freeze()
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, tuple[str, ...]], RouteEntry] = {}
        self._frozen: tuple[RouteEntry, ...] | None = None

    def add(
        self,
        method: str,
        pattern: str,
        handler: Callable[..., Any],
        *,
        chain: Chain | None = None,
    ) -> RouteEntry:
        """Register ``handler`` for ``method`` requests matching ``pattern``.

        Raises:
            PatternParseError: If the pattern has invalid syntax.
            DuplicateRouteError: If an entry with the same method and
                pattern shape is already registered.
            ValueError: If the method is not supported or the table is frozen.
        """
        if self._frozen is not None:
            raise ValueError("Route table is frozen")

        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported method '{method}' for pattern '{pattern}'")

        entry = RouteEntry(
            method=method,
            pattern=pattern,
            handler=handler,
            chain=chain if chain is not None else Chain(),
            segments=tuple(parse_pattern(pattern)),
        )

        key = (method, entry.shape)
        if key in self._entries:
            raise DuplicateRouteError(
                f"Duplicate route: {method} {pattern}\n"
                f"  First: {self._entries[key].pattern} -> {self._entries[key].name}\n"
                f"  Second: {pattern} -> {entry.name}"
            )
        self._entries[key] = entry

        logger.debug(
            "Registered route",
            extra={"method": method, "pattern": pattern, "middleware": entry.chain.names},
        )
        return entry

    def get(
        self, pattern: str, handler: Callable[..., Any], *, chain: Chain | None = None
    ) -> RouteEntry:
        return self.add("GET", pattern, handler, chain=chain)

    def post(
        self, pattern: str, handler: Callable[..., Any], *, chain: Chain | None = None
    ) -> RouteEntry:
        return self.add("POST", pattern, handler, chain=chain)

    def freeze(self) -> tuple[RouteEntry, ...]:
        """Stop accepting entries and return them in match priority order.

        Static routes come before parametrised ones so that
        /snippet/create is never captured by /snippet/:id.
        """
        if self._frozen is None:
            self._frozen = tuple(
                sorted(
                    self._entries.values(),
                    key=lambda e: (
                        # Static routes first (fewer parameters)
                        len([s for s in e.segments if s.is_parameter]),
                        # Shorter paths first
                        len(e.segments),
                        # Alphabetical for consistency
                        e.pattern,
                        e.method,
                    ),
                )
            )
        return self._frozen

    @property
    def frozen(self) -> bool:
        return self._frozen is not None

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self.freeze() if self._frozen is not None else self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)
