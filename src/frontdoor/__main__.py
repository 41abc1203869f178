"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Defaults + environment (ADDR_PORT, TLS_CERT_FILE, ...)
    python -m frontdoor

    # Override anything from the command line
    python -m frontdoor --port 4443 --cert ./tls/cert.pem --key ./tls/key.pem

    # Plain HTTP for local development
    python -m frontdoor --insecure --host 127.0.0.1

    # Security headers
    python -m frontdoor --secure-header X-Frame-Options=deny \\
                        --secure-header Referrer-Policy=origin-when-cross-origin

The entry point does three things, in order:

1. Reads configuration (defaults, then environment, then flags)
2. Constructs the loggers, the application and the server
3. Runs the server

=============================================================================
"""

import argparse
import sys
from typing import Dict, List, Optional

from . import __version__
from .app import Application
from .config import ServerConfig
from .core import install_fatal_excepthook
from .log import configure_logging
from .server import HTTPServer


def _header_pair(value: str) -> tuple[str, str]:
    name, sep, header_value = value.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {value!r}")
    return name.strip(), header_value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="frontdoor",
        description="TLS-terminating HTTP/1.1 front end",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Interface to bind (env: ADDR_HOST)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (env: ADDR_PORT)")

    # ─────────────────────────────────────────────────────────────────────
    # TLS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--cert", help="Certificate file (env: TLS_CERT_FILE)")
    parser.add_argument("--key", help="Private key file (env: TLS_KEY_FILE)")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Serve plain HTTP without TLS (development only)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # DEADLINES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--read-timeout", type=float, help="Seconds (env: READ_TIMEOUT)")
    parser.add_argument("--write-timeout", type=float, help="Seconds (env: WRITE_TIMEOUT)")
    parser.add_argument(
        "--idle-timeout",
        type=float,
        help="Seconds; defaults to the read timeout when unset (env: IDLE_TIMEOUT)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # BEHAVIOR
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--secure-header",
        dest="secure_headers",
        action="append",
        type=_header_pair,
        default=[],
        metavar="NAME=VALUE",
        help="Add a response header to every response (repeatable)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (env: LOG_LEVEL, default: INFO)",
    )
    parser.add_argument("--version", "-v", action="version", version=f"frontdoor {__version__}")

    return parser


def config_from_args(args: argparse.Namespace, base: ServerConfig) -> ServerConfig:
    """Apply the flags that were given on top of an environment-derived config."""
    overrides = {
        "host": args.host,
        "port": args.port,
        "cert_file": args.cert,
        "key_file": args.key,
        "read_timeout": args.read_timeout,
        "write_timeout": args.write_timeout,
        "idle_timeout": args.idle_timeout,
        "log_level": args.log_level,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(base, name, value)

    if args.insecure:
        base.tls_enabled = False

    headers: Dict[str, str] = dict(base.security_headers)
    headers.update(args.secure_headers)
    base.security_headers = headers
    return base


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args, ServerConfig.from_env())
        config.validate()
    except ValueError as exc:
        print(f"frontdoor: {exc}", file=sys.stderr)
        return 2

    info_log, error_log = configure_logging(level=config.log_level)
    install_fatal_excepthook(error_log)

    app = Application(info_log, error_log, security_headers=config.security_headers)
    server = HTTPServer(config, app.routes(), info_log=info_log, error_log=error_log)
    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
