"""
=============================================================================
APPLICATION
=============================================================================

The Application holds the process-wide dependencies (the two loggers
and the security-header policy) and assembles the request pipeline once
at startup:

    routes()
      │
      ├── standard = Chain(RecoverPanic, LogRequest, SecureHeaders)
      ├── dynamic  = Chain()                ◄── per-route extension point
      │
      ├── router   = Router(chain=dynamic)
      │      GET /          → home
      │      GET /products  → products
      │   router.seal()
      │
      └── return standard.then(router)

    A request therefore travels:

    recover ─► log ─► secure ─► router ─► dynamic ─► handler
                                   │
                                   └── no match ─► 404 (no handler runs)

The returned handler is immutable and shared by every connection thread.

=============================================================================
"""

from typing import Dict, Optional
import logging

from .http import HTTPResponse, Router, Handler, error_response, internal_error, not_found
from .middleware import Chain, RecoverPanic, LogRequest, SecureHeaders
from .handlers import home, products


logger = logging.getLogger(__name__)


class Application:
    """
    Process-wide dependencies plus the helpers handlers use to fail.

    Args:
        info_log: Access lines and startup messages.
        error_log: Faults, with tracebacks.
        security_headers: Headers SecureHeaders adds to every response.
    """

    def __init__(
        self,
        info_log: logging.Logger,
        error_log: logging.Logger,
        security_headers: Optional[Dict[str, str]] = None,
    ):
        self.info_log = info_log
        self.error_log = error_log
        self.security_headers = dict(security_headers or {})

    # =========================================================================
    # ERROR HELPERS
    # =========================================================================

    def server_error(self, exc: Exception) -> HTTPResponse:
        """
        Record a fault and build the generic 500.

        Exactly one error-log record per call, carrying the traceback.
        stacklevel=2 attributes the record to the caller (the layer that
        caught the fault), not to this helper.
        """
        self.error_log.error(
            f"{type(exc).__name__}: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
            stacklevel=2,
        )
        return internal_error()

    def client_error(self, status: int) -> HTTPResponse:
        """Plain-text response for a client mistake, e.g. client_error(400)."""
        return error_response(status)

    def not_found(self) -> HTTPResponse:
        return not_found()

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def register(self, router: Router):
        """Add the application's routes. Registration order is match order."""
        router.get("/")(home)
        router.get("/products")(products)

    def routes(self) -> Handler:
        """Build the full request pipeline. Call once, at startup."""
        standard = Chain(
            RecoverPanic(self.server_error),
            LogRequest(self.info_log),
            SecureHeaders(self.security_headers),
        )
        # TODO: add authentication middleware here once sessions exist
        dynamic = Chain()

        router = Router(chain=dynamic)
        self.register(router)
        router.seal()
        for line in router.describe():
            logger.debug(f"route {line}")

        return standard.then(router)


__all__ = ["Application"]
