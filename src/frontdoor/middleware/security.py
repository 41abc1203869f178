"""
Secure-headers middleware.

Adds a fixed set of response headers to every response that passes
through it, on the way OUT:

    request  ──►  secure_headers  ──►  next(request)
                                            │
    response ◄──  setdefault(...)  ◄────────┘

A header the handler (or an inner layer) already set is left alone, so a
route can still override a policy for itself.

The set of headers is configuration. Nothing is added by default; a
typical deployment passes something like:

    SecureHeaders({
        "X-Frame-Options": "deny",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "origin-when-cross-origin",
    })
"""

from typing import Dict, Mapping, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.router import Handler


class SecureHeaders:
    """Middleware: set configured headers on responses that lack them."""

    __name__ = "secure_headers"

    def __init__(self, headers: Optional[Mapping[str, str]] = None):
        self.headers: Dict[str, str] = dict(headers or {})

    def __call__(self, next_handler: Handler) -> Handler:
        policy = tuple(self.headers.items())

        def secure_headers(request: HTTPRequest) -> HTTPResponse:
            response = next_handler(request)
            for name, value in policy:
                response.headers.setdefault(name, value)
            return response

        return secure_headers
