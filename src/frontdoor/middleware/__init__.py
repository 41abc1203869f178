"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware wraps a handler to add behavior before and/or after it runs,
without the handler knowing:

    Middleware = Callable[[Handler], Handler]

=============================================================================
BUILT-IN MIDDLEWARE
=============================================================================

RecoverPanic:
    Turns a handler exception into a 500 with "Connection: close" and one
    error-log record. Must be the outermost layer.

LogRequest:
    One access line per request, written before the handler runs.

SecureHeaders:
    Adds configured response headers the handler did not set itself.

=============================================================================
DESIGN PATTERN: DECORATOR CHAIN
=============================================================================

Each middleware returns a new handler that calls the one it wraps. A
Chain stacks them in a fixed, visible order (see chain.py). This is the
Chain of Responsibility pattern expressed with plain functions.

=============================================================================
"""

from .chain import Chain, Middleware, middleware
from .recovery import RecoverPanic
from .logging import LogRequest, format_request_line
from .security import SecureHeaders

__all__ = [
    # Composition
    "Chain",
    "Middleware",
    "middleware",

    # Built-in middleware
    "RecoverPanic",
    "LogRequest",
    "format_request_line",
    "SecureHeaders",
]
