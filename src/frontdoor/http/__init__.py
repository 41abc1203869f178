"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that understands HTTP itself, independent of sockets:

    ┌──────────────┬──────────────────────────────────────────────────────┐
    │ headers.py   │ Case-insensitive, ordered, freezable header mapping  │
    │ request.py   │ Bytes → immutable HTTPRequest                        │
    │ response.py  │ HTTPResponse, ResponseBuilder, error responses       │
    │ router.py    │ (method, pattern) → handler, first match wins        │
    └──────────────┴──────────────────────────────────────────────────────┘

=============================================================================
"""

from .headers import Headers, HeadersFrozenError
from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    not_found,
    internal_error,
    status_phrase,
)
from .router import Router, Route, RouteMatch, Handler

__all__ = [
    # Headers
    "Headers",
    "HeadersFrozenError",

    # Requests
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "not_found",
    "internal_error",
    "status_phrase",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "Handler",
]
