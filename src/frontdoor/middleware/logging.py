"""
=============================================================================
REQUEST LOGGING MIDDLEWARE
=============================================================================

Writes one access-log line per request BEFORE the request is handled:

    INFO\t2026/10/19 09:30:00 203.0.113.7:51234 - HTTP/1.1 GET /products?page=2
    ────  ─────────────────── ───────────────── ── ──────── ─── ────────────────
     │          │                    │                │      │         │
    level   timestamp          remote peer        protocol method   request URI

=============================================================================
WHY LOG BEFORE THE HANDLER?
=============================================================================

A request that hangs or crashes still leaves a trace. If the log line
were written after the handler returned, the requests you most want to
find would be exactly the ones missing from the log.

The line records only what the request says about itself. The response
status is not part of it; faults are reported separately, once, by the
recovery middleware.

=============================================================================
CONCURRENCY
=============================================================================

Every connection thread logs through the same logger. The stdlib logging
module takes a per-handler lock around each emit(), and each record is
formatted and written as one string, so two requests never interleave
within a line. This module adds no locking of its own.

=============================================================================
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.router import Handler


def format_request_line(request: HTTPRequest) -> str:
    """"<ip>:<port> - <proto> <METHOD> <uri>"."""
    return f"{request.remote_addr} - {request.version} {request.method} {request.request_uri}"


class LogRequest:
    """
    Middleware: one INFO record per request, written before dispatch.

    Never mutates the request or the response.

    Args:
        info_log: Logger for access lines (shared by all threads).
        level: Log level of the access lines.
    """

    __name__ = "log_request"

    def __init__(self, info_log: logging.Logger, level: int = logging.INFO):
        self.info_log = info_log
        self.level = level

    def __call__(self, next_handler: Handler) -> Handler:
        info_log = self.info_log
        level = self.level

        def log_request(request: HTTPRequest) -> HTTPResponse:
            info_log.log(level, format_request_line(request))
            return next_handler(request)

        return log_request
