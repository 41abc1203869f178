"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The low-level networking infrastructure under the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Creates, binds and listens on the TCP socket                     │
    │  • Runs the accept() loop                                           │
    │  • Stops on SIGTERM / SIGINT                                        │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ One thread per accepted connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • TLS handshake on the connection's own thread                     │
    │  • Buffered reads (TCP is a stream, not messages!)                  │
    │  • Read, write and idle deadlines                                   │
    │  • Keep-alive: many requests per connection                         │
    └─────────────────────────────────────────────────────────────────────┘

    tls.py     SSLContext construction (startup)
    tasks.py   Background work started by handlers, and its fault rules

=============================================================================
WHY A THREAD PER CONNECTION, WITH NO POOL?
=============================================================================

A pool puts an upper bound on concurrent connections and makes the
(N+1)th client wait for a slot. Here every connection is bounded in TIME
instead: the deadlines guarantee a thread cannot be held forever, so
connections never queue behind each other.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, DeadlineExceeded
from .tls import build_tls_context
from .tasks import go, guarded, install_fatal_excepthook

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "DeadlineExceeded",
    "build_tls_context",
    "go",
    "guarded",
    "install_fatal_excepthook",
]
