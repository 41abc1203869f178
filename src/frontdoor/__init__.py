"""
=============================================================================
FRONTDOOR
=============================================================================

A small TLS-terminating HTTP/1.1 front end built on the standard library.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  core/          Sockets: accept loop, connections, deadlines, TLS   │
    │  http/          Protocol: headers, request parsing, responses,      │
    │                 routing                                             │
    │  middleware/    Chains and the standard layers (recover, log,       │
    │                 secure headers)                                     │
    │  handlers/      The pages: home, products                           │
    │                                                                      │
    │  app.py         Wires the pipeline: standard.then(router)           │
    │  server.py      Lifecycle: startup, thread per connection           │
    │  config.py      ServerConfig (defaults → env → CLI)                 │
    │  log.py         The info and error loggers                          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
KEY PROPERTIES
=============================================================================

- A fault in a handler becomes a 500 with "Connection: close", logged
  once. The server keeps serving.
- Unknown paths, and known paths under the wrong method, are 404s.
- Slow or idle clients are cut off by absolute read, write and idle
  deadlines.
- Startup problems (certificate, port) stop the process with status 1.

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .app import Application
from .server import HTTPServer, StartupError
from .log import configure_logging

__all__ = [
    "Application",
    "HTTPServer",
    "ServerConfig",
    "StartupError",
    "configure_logging",
    "__version__",
]
