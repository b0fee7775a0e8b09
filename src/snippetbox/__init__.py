"""Snippetbox: a server-rendered snippet sharing application."""

# Primary API: the application factory
from snippetbox.app import create_app, dynamic_chain, standard_chain
from snippetbox.config import Settings

# Core types: chains and the route table
from snippetbox.core.chain import Chain
from snippetbox.core.parser import PathSegment, SegmentType
from snippetbox.core.routing import RouteEntry, RouteTable

# Exceptions
from snippetbox.exceptions import (
    DuplicateEmailError,
    DuplicateRouteError,
    InvalidCredentialsError,
    MiddlewareValidationError,
    PatternParseError,
    RecordNotFoundError,
    SessionStoreError,
    SnippetboxError,
    UserStoreError,
)

__all__ = [
    # Primary API
    "create_app",
    "dynamic_chain",
    "standard_chain",
    "Settings",
    # Core types
    "Chain",
    "PathSegment",
    "RouteEntry",
    "RouteTable",
    "SegmentType",
    # Exceptions
    "DuplicateEmailError",
    "DuplicateRouteError",
    "InvalidCredentialsError",
    "MiddlewareValidationError",
    "PatternParseError",
    "RecordNotFoundError",
    "SessionStoreError",
    "SnippetboxError",
    "UserStoreError",
]

__version__ = "1.0.0"
