"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

This module implements the listening side of the server: it owns the
listening socket, accepts connections and hands each one off.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT
    3. listen()    OS starts queueing incoming connections (backlog)
    4. accept()    Wait for a connection; returns a NEW socket for it
    5. close()     Release the listening socket

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │                       │     Bound to 0.0.0.0:4000
                    └───────────┬───────────┘     Never sends/receives data
                                │
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client    │         │ Client    │         │ Client    │
    │ Socket 1  │         │ Socket 2  │         │ Socket 3  │
    └───────────┘         └───────────┘         └───────────┘

bind() and serve() are separate steps. Binding is part of STARTUP and
its failure is fatal; serving is the long-running accept loop. Callers
(and tests) can bind to port 0 and read the real port from `address`
before any connection arrives.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:  Rebind immediately after a restart instead of waiting out
               TIME_WAIT ("Address already in use").
TCP_NODELAY:   Disable Nagle's algorithm; send small responses right away.

=============================================================================
SIGNAL HANDLING FOR GRACEFUL SHUTDOWN
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd, kill) stop the accept
loop. Python only allows signal handlers to be installed from the main
thread, so a server running on any other thread (tests, embedding) skips
this step and is stopped with shutdown() instead.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

# Backoff between failed accept() calls
ACCEPT_BACKOFF_MIN = 0.005
ACCEPT_BACKOFF_MAX = 1.0


class SocketServer:
    """
    Low-level TCP socket server.

        bind()            Create socket, set options, bind, listen
        serve(callback)   Accept loop; calls callback(conn) per connection
        shutdown()        Stop the accept loop (idempotent, any thread)

    Usage:
        server = SocketServer(config)
        server.bind()                      # may raise OSError
        server.serve(handle_connection)    # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening; cleared again on shutdown
        self.ready = threading.Event()
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port when bound to port 0."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to check the running flag
        sock.settimeout(1.0)

        return sock

    def bind(self):
        """
        Create the listening socket.

        Raises:
            OSError: The address could not be bound (in use, no permission,
                     unknown host). The socket is closed before re-raising.
        """
        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError:
            sock.close()
            raise

        self._socket = sock
        logger.debug(f"Listening on {self.address[0]}:{self.address[1]}")

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def serve(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called.

        Binds first if bind() has not been called yet. Each accepted
        socket is wrapped in a Connection carrying the configured
        deadlines and passed to connection_handler, which must not block
        (the HTTP server starts a thread per connection).
        """
        if self._socket is None:
            self.bind()

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()
        self.ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept until shutdown.

        A failed accept() (EMFILE under load, ECONNABORTED from a client
        that reset) does not end the loop: it backs off and tries again.

            5ms → 10ms → 20ms → ... → 1s   (reset after a good accept)
        """
        delay = 0.0

        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                delay = min(delay * 2 or ACCEPT_BACKOFF_MIN, ACCEPT_BACKOFF_MAX)
                logger.error(f"Accept error: {e}; retrying in {delay * 1000:g}ms")
                self._shutdown_event.wait(delay)
                continue

            delay = 0.0
            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                buffer_size=self.config.buffer_size,
                read_timeout=self.config.read_timeout,
                write_timeout=self.config.write_timeout,
                idle_timeout=self.config.effective_idle_timeout,
                max_request_size=self.config.max_request_size,
            )
            try:
                connection_handler(conn)
            except Exception as e:
                # e.g. RuntimeError when no thread can be started
                logger.error(f"Cannot serve {conn.peer}: {e}")
                conn.abort()

    def shutdown(self):
        """Stop accepting connections. Safe to call from any thread, more than once."""
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self.ready.clear()
        logger.debug("Socket server stopped")

