"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration management for the server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m frontdoor --port 4000                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── ADDR_PORT=4000 python -m frontdoor                         │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TIMEOUTS
=============================================================================

    read_timeout    5s    Whole request (TLS handshake, headers, body)
    write_timeout   10s   Whole response, from the start of the request read
    idle_timeout    60s   Keep-alive wait for the next request;
                          None means "same as read_timeout"

=============================================================================
INTERVIEW QUESTIONS ABOUT CONFIGURATION
=============================================================================

Q: "How do you validate configuration?"
A: "Validate eagerly at startup, not lazily at first use.
   Fail fast with clear error messages."

Q: "Why is the idle timeout separate from the read timeout?"
A: "They protect against different things. The read timeout bounds a
   slow client in the middle of a request. The idle timeout bounds how
   long a quiet keep-alive connection may hold a thread."

=============================================================================
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional


@dataclass
class ServerConfig:
    """
    Configuration for the server.

    Development:
        ServerConfig(host="127.0.0.1", tls_enabled=False, log_level="DEBUG")

    Production:
        ServerConfig.from_env()     # ADDR_PORT=443, certs in ./tls/
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """IP address to bind to. "0.0.0.0" listens on all interfaces."""

    port: int = 4000
    """Port to listen on. 0 lets the OS pick a free port (tests)."""

    backlog: int = 128
    """Maximum number of queued connections."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    # ─────────────────────────────────────────────────────────────────────
    # TLS
    # ─────────────────────────────────────────────────────────────────────

    cert_file: str = "./tls/cert.pem"
    key_file: str = "./tls/key.pem"

    tls_enabled: bool = True
    """Serve plain HTTP when False (local development and tests only)."""

    # ─────────────────────────────────────────────────────────────────────
    # DEADLINES (seconds)
    # ─────────────────────────────────────────────────────────────────────

    read_timeout: float = 5.0
    write_timeout: float = 10.0
    idle_timeout: Optional[float] = 60.0

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 1024 * 1024
    """Largest accepted request (headers + body) in bytes; larger gets 413."""

    security_headers: Dict[str, str] = field(default_factory=dict)
    """Headers added to every response that does not set them itself."""

    server_name: str = "frontdoor/1.0"
    """Value of the Server response header."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    @property
    def effective_idle_timeout(self) -> float:
        """idle_timeout, falling back to read_timeout when unset."""
        if self.idle_timeout is None:
            return self.read_timeout
        return self.idle_timeout

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        ADDR_HOST       Interface to bind (default: 0.0.0.0)
        ADDR_PORT       Port to listen on (default: 4000)
        TLS_CERT_FILE   Certificate path (default: ./tls/cert.pem)
        TLS_KEY_FILE    Private key path (default: ./tls/key.pem)
        READ_TIMEOUT    Seconds (default: 5)
        WRITE_TIMEOUT   Seconds (default: 10)
        IDLE_TIMEOUT    Seconds, or "" to use READ_TIMEOUT (default: 60)
        LOG_LEVEL       DEBUG, INFO, WARNING, ERROR (default: INFO)

        =====================================================================

        Raises:
            ValueError: A variable is set to something that is not a number.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def number(name: str, default, convert=float):
            raw = env.get(name)
            if raw is None:
                return default
            try:
                return convert(raw)
            except ValueError:
                raise ValueError(f"{name} must be a number, got {raw!r}") from None

        idle_raw = env.get("IDLE_TIMEOUT")
        if idle_raw is not None and idle_raw.strip().lower() in ("", "none"):
            idle_timeout = None
        else:
            idle_timeout = number("IDLE_TIMEOUT", defaults.idle_timeout)

        return cls(
            host=env.get("ADDR_HOST", defaults.host),
            port=number("ADDR_PORT", defaults.port, int),
            cert_file=env.get("TLS_CERT_FILE", defaults.cert_file),
            key_file=env.get("TLS_KEY_FILE", defaults.key_file),
            read_timeout=number("READ_TIMEOUT", defaults.read_timeout),
            write_timeout=number("WRITE_TIMEOUT", defaults.write_timeout),
            idle_timeout=idle_timeout,
            log_level=env.get("LOG_LEVEL", defaults.log_level),
        )

    def validate(self) -> None:
        """
        Validate configuration values. Fail fast at startup.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        for name in ("read_timeout", "write_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

        if self.idle_timeout is not None and self.idle_timeout <= 0:
            raise ValueError("idle_timeout must be positive (or None)")

        if self.max_request_size < 1:
            raise ValueError("max_request_size must be >= 1")

        if self.tls_enabled and not (self.cert_file and self.key_file):
            raise ValueError("cert_file and key_file are required when TLS is enabled")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Invalid log_level: {self.log_level}")
