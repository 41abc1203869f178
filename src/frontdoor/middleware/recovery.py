"""
=============================================================================
PANIC RECOVERY MIDDLEWARE
=============================================================================

Turns an exception raised anywhere inside the wrapped handler into a
well-formed 500 response, so one broken request never takes down the
connection loop or the server.

=============================================================================
THE FAULT BOUNDARY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  RecoverPanic                                                       │
    │                                                                      │
    │   try:                                                               │
    │       response = next(request)   ◄── log, secure headers, router,   │
    │                                      dynamic chain, handler          │
    │   except Exception as exc:                                           │
    │       response = server_error(exc)      → ERROR log + traceback      │
    │       response["Connection"] = "close"  → server drops the conn      │
    │                                                                      │
    │   return response                       ← NEVER raises               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

"Connection: close" makes the server close the transport after this
response and tells the client not to reuse it. The state of a connection
whose handler blew up is not worth trusting.

=============================================================================
WHAT IT DOES *NOT* CATCH
=============================================================================

The boundary is a try/except, and a try/except only sees exceptions
raised on ITS OWN THREAD. If a handler starts background work:

    def handler(request):
        go(send_receipt_email, order)      # runs on another thread
        return ok

and send_receipt_email raises, this middleware never hears about it. That
exception is fatal to the whole process (see core.tasks). A handler that
spawns work must give that work its own boundary:

    go(guarded(send_receipt_email, error_log), order)

Only Exception subclasses are recovered. KeyboardInterrupt and SystemExit
are requests to stop the process, not request faults.

=============================================================================
PLACEMENT
=============================================================================

RecoverPanic must be the FIRST middleware of the standard chain so it
wraps every other layer. A fault inside the logging or security-header
middleware is a fault like any other.

=============================================================================
"""

from typing import Callable

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.router import Handler


ServerErrorFunc = Callable[[Exception], HTTPResponse]


class RecoverPanic:
    """
    Middleware: recover handler faults as 500 + "Connection: close".

    Args:
        server_error: Builds the error response for a fault and records it
                      in the error log (exactly once).

    Usage:
        chain = Chain(RecoverPanic(app.server_error), LogRequest(app.info_log))
    """

    __name__ = "recover_panic"

    def __init__(self, server_error: ServerErrorFunc):
        self.server_error = server_error

    def __call__(self, next_handler: Handler) -> Handler:
        server_error = self.server_error

        def recover_panic(request: HTTPRequest) -> HTTPResponse:
            try:
                return next_handler(request)
            except Exception as exc:
                response = server_error(exc)
                response.set_header("Connection", "close")
                return response

        return recover_panic

