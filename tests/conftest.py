"""
pytest configuration and fixtures.
"""

import io
import logging
import socket
import threading
from typing import Callable, Dict, Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from frontdoor import Application, HTTPServer, ServerConfig, configure_logging
from frontdoor.http import HTTPRequest, HTTPResponse, Router


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /products?page=2&sort=price HTTP/1.1\r\n"
        b"Host: localhost:4000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"sku": "FD-001", "quantity": 2}'
    return (
        b"POST /orders HTTP/1.1\r\n"
        b"Host: localhost:4000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


# =============================================================================
# LOGGERS
# =============================================================================
# These loggers propagate to the root logger so caplog sees their records.

@pytest.fixture
def info_log() -> logging.Logger:
    logger = logging.getLogger("tests.frontdoor.info")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def error_log() -> logging.Logger:
    logger = logging.getLogger("tests.frontdoor.error")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def app(info_log, error_log) -> Application:
    return Application(info_log, error_log)


# =============================================================================
# BACKGROUND SERVER
# =============================================================================

def boom(request: HTTPRequest) -> HTTPResponse:
    raise RuntimeError("boom")


class FaultyApplication(Application):
    """The real application plus a route that always fails."""

    def register(self, router: Router):
        super().register(router)
        router.get("/boom")(boom)


@pytest.fixture
def config() -> ServerConfig:
    """Plain-HTTP test configuration with short deadlines."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        tls_enabled=False,
        read_timeout=1.0,
        write_timeout=2.0,
        idle_timeout=1.0,
        log_level="DEBUG",
    )


class BackgroundServer:
    """An HTTPServer running in a background thread, with captured logs."""

    def __init__(self, server: HTTPServer, info_stream: io.StringIO, error_stream: io.StringIO):
        self.server = server
        self.info_stream = info_stream
        self.error_stream = error_stream
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self.server.start()
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

        if not self.server.ready.wait(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self, timeout: float = 5.0) -> socket.socket:
        return socket.create_connection(("127.0.0.1", self.port), timeout=timeout)


@pytest.fixture
def server_factory(config, request) -> Generator[Callable[..., BackgroundServer], None, None]:
    """
    Build and start servers; all are stopped at teardown.

        srv = server_factory(read_timeout=0.5)
        srv = server_factory(app_class=FaultyApplication)
    """
    started: List[BackgroundServer] = []

    def make(app_class=FaultyApplication, start: bool = True, **overrides) -> BackgroundServer:
        for name, value in overrides.items():
            setattr(config, name, value)

        info_stream, error_stream = io.StringIO(), io.StringIO()
        info_log, error_log = configure_logging(
            name=f"tests.server.{request.node.name}.{len(started)}",
            level=config.log_level,
            info_stream=info_stream,
            error_stream=error_stream,
        )
        application = app_class(info_log, error_log, security_headers=config.security_headers)
        server = HTTPServer(config, application.routes(), info_log=info_log, error_log=error_log)

        background = BackgroundServer(server, info_stream, error_stream)
        if start:
            background.start()
            started.append(background)
        return background

    yield make

    for background in started:
        background.stop()


@pytest.fixture
def live_server(server_factory) -> BackgroundServer:
    return server_factory()


# =============================================================================
# CLIENT HELPERS
# =============================================================================

def read_response(sock: socket.socket) -> Tuple[int, Dict[str, str], bytes]:
    """
    Read one HTTP response from sock.

    Returns (status, headers with lowercased names, body).
    Raises ConnectionError if the peer closes before a full response.
    """
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = sock.recv(4096)
        if not chunk:
            raise ConnectionError(f"closed after {len(data)} bytes")
        data += chunk

    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()

    length = int(headers.get("content-length", 0))
    while len(body) < length:
        chunk = sock.recv(4096)
        if not chunk:
            raise ConnectionError("closed mid-body")
        body += chunk

    return status, headers, body[:length]


def read_until_closed(sock: socket.socket) -> bytes:
    """Everything the peer sends until it closes (a reset counts as closed)."""
    data = b""
    try:
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                return data
            data += chunk
    except ConnectionResetError:
        return data


def request_bytes(method: str, target: str, headers: Optional[Dict[str, str]] = None, body: bytes = b"") -> bytes:
    lines = [f"{method} {target} HTTP/1.1", "Host: localhost"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    if body:
        lines.append(f"Content-Length: {len(body)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("iso-8859-1") + body
