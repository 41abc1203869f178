"""
=============================================================================
HTTP SERVER
=============================================================================

The server lifecycle manager: it owns the listening socket and the TLS
context, runs one thread per connection, and enforces the connection
deadlines. Everything HTTP-semantic happens in the handler it is given.

=============================================================================
REQUEST PROCESSING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       CONNECTION THREAD                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept ──► thread ──► TLS handshake          (read deadline)       │
    │                              │                                       │
    │                              ▼                                       │
    │               ┌──► read_request()              (idle, read)          │
    │               │          │                                           │
    │               │          ├── None ──────────────────────► close      │
    │               │          ├── too large ──► 413 ─────────► close      │
    │               │          ▼                                           │
    │               │     parse ── malformed ──► 400 ─────────► close      │
    │               │          │                                           │
    │               │          ▼                                           │
    │               │     handler(request)     recover, log, secure,       │
    │               │          │               router, dynamic, handler    │
    │               │          ▼                                           │
    │               │     commit + send_response()   (write deadline)      │
    │               │          │                                           │
    │               └── keep-alive?  ── no ───────────────────► close      │
    │                                                                      │
    │   DeadlineExceeded anywhere ─────────────────────────► hard close    │
    │   fault escaping the handler ──► "http: panic serving" ► hard close  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STARTUP IS FATAL, SERVING IS NOT
=============================================================================

    start()           TLS material + bind       Failure → StartupError
    serve_forever()   Accept loop               Per-connection failures
                                                never stop the loop
    run()             start() + serve_forever() StartupError is logged
                                                and the process exits 1

There are no retries: a server that cannot load its certificate or bind
its port is misconfigured, and restarting it in a loop only hides that.

=============================================================================
INTERVIEW QUESTIONS ABOUT THE SERVER
=============================================================================

Q: "Why is the TLS handshake done on the connection thread?"
A: "A handshake is several network round trips. Done on the accept loop,
   one slow client would stop every other client from connecting."

Q: "Why no response when a read deadline passes?"
A: "The client has not finished saying what it wants, and may be doing
   it on purpose (slowloris). Tearing the connection down is the cheapest
   correct answer."

=============================================================================
"""

import logging
import ssl
import threading
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, DeadlineExceeded, build_tls_context
from .http import RequestParser, HTTPParseError, HTTPResponse, Handler, error_response


logger = logging.getLogger(__name__)


class StartupError(Exception):
    """The server could not start: TLS material or listening socket unavailable."""


class HTTPServer:
    """
    TLS-terminating HTTP/1.1 server.

    =========================================================================
    USAGE
    =========================================================================

        info_log, error_log = configure_logging()
        app = Application(info_log, error_log)

        server = HTTPServer(ServerConfig.from_env(), app.routes(),
                            info_log=info_log, error_log=error_log)
        server.run()        # blocks; exits the process on startup failure

    =========================================================================
    """

    def __init__(
        self,
        config: ServerConfig,
        handler: Handler,
        info_log: Optional[logging.Logger] = None,
        error_log: Optional[logging.Logger] = None,
    ):
        """
        Args:
            config: Server configuration (validated here, fail-fast).
            handler: The complete request pipeline, e.g. Application.routes().
            info_log: Startup messages. Defaults to this module's logger.
            error_log: Startup failures and escaped faults.
        """
        self.config = config
        self.config.validate()

        self._handler = handler
        self.info_log = info_log or logger
        self.error_log = error_log or logger

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._tls_context: Optional[ssl.SSLContext] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port) once started."""
        return self._socket_server.address

    @property
    def ready(self) -> threading.Event:
        """Set while the server is accepting connections."""
        return self._socket_server.ready

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self):
        """
        Perform startup: build the TLS context and bind the socket.

        Raises:
            StartupError: Certificate/key missing or invalid, or the
                          address could not be bound.
        """
        if self.config.tls_enabled:
            try:
                self._tls_context = build_tls_context(self.config.cert_file, self.config.key_file)
            except (OSError, ssl.SSLError) as exc:
                raise StartupError(f"cannot load TLS certificate: {exc}") from exc

        try:
            self._socket_server.bind()
        except OSError as exc:
            raise StartupError(f"listen tcp {self.config.address}: {exc}") from exc

    def serve_forever(self):
        """Accept connections until shutdown(). Requires start()."""
        host, port = self.address
        self.info_log.info(f"Starting server on {host}:{port}")
        self._socket_server.serve(self._handle_connection)

    def run(self):
        """
        start() + serve_forever(), the way the CLI runs the server.

        A StartupError is logged to the error log and ends the process
        with exit status 1.
        """
        try:
            self.start()
        except StartupError as exc:
            self.error_log.error(str(exc))
            raise SystemExit(1) from exc

        try:
            self.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections. Open connections finish their current request."""
        self._socket_server.shutdown()

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called on the accept loop: hand the connection its own thread."""
        thread = threading.Thread(
            target=self._serve_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        thread.start()

    def _serve_connection(self, conn: Connection):
        """
        Serve one connection until it closes (runs in its own thread).

        Nothing raised here may escape the thread: every failure ends
        in either a graceful close or a hard close.
        """
        try:
            if self._tls_context is not None:
                try:
                    conn.handshake(self._tls_context)
                except ssl.SSLError as exc:
                    self.error_log.error(f"http: TLS handshake error from {conn.peer}: {exc}")
                    conn.abort()
                    return

            while self._serve_one(conn):
                pass
            conn.close()

        except DeadlineExceeded as exc:
            logger.debug(f"[{conn.id}] {exc}, closing")
            conn.abort()

        except OSError as exc:
            logger.debug(f"[{conn.id}] Connection error: {exc}")
            conn.abort()

        except Exception as exc:
            self.error_log.error(f"http: panic serving {conn.peer}: {exc}", exc_info=exc)
            conn.abort()

    def _serve_one(self, conn: Connection) -> bool:
        """
        Read, dispatch and answer one request.

        Returns:
            True if the connection should stay open for another request.
        """
        # ─────────────────────────────────────────────────────────────────
        # READ + PARSE
        # ─────────────────────────────────────────────────────────────────
        try:
            raw_request = conn.read_request()
            if raw_request is None:
                return False
            request = self._parser.parse(raw_request, conn.address)
        except HTTPParseError as e:
            logger.debug(f"[{conn.id}] Bad request: {e}")
            self._send(conn, error_response(e.status_code), keep_alive=False)
            return False

        # ─────────────────────────────────────────────────────────────────
        # DISPATCH
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.PROCESSING
        response = self._handler(request)

        # ─────────────────────────────────────────────────────────────────
        # CONNECTION MANAGEMENT + WRITE
        # ─────────────────────────────────────────────────────────────────
        keep_alive = (
            request.is_keep_alive
            and self.is_running
            and response.headers.get("Connection", "").lower() != "close"
        )
        if keep_alive and request.version == "HTTP/1.0":
            response.headers["Connection"] = "keep-alive"

        sent = self._send(conn, response, keep_alive, head_only=request.method == "HEAD")
        return sent and keep_alive

    def _send(
        self,
        conn: Connection,
        response: HTTPResponse,
        keep_alive: bool,
        head_only: bool = False,
    ) -> bool:
        if not keep_alive:
            response.headers["Connection"] = "close"

        response.commit()
        data = response.to_bytes(self.config.server_name)
        if head_only:
            data = data[:data.index(b"\r\n\r\n") + 4]

        return conn.send_response(data)


__all__ = ["HTTPServer", "StartupError"]
