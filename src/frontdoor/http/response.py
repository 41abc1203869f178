"""
=============================================================================
HTTP RESPONSE
=============================================================================

Builds HTTP/1.1 responses and serializes them for the wire.

=============================================================================
RESPONSE LIFECYCLE
=============================================================================

A response is an ordinary mutable object while it travels back out
through the middleware chain. Any layer may change its status, headers
or body. The moment the connection is about to write it, the response is
COMMITTED and its headers freeze:

    Handler          Middleware (way out)        Connection
    ───────          ────────────────────        ──────────
    HTTPResponse ──► set_header("X-...")  ──►    commit()      ← headers frozen
                     set_header("Conn...")       to_bytes()
                                                 sendall()

    After commit():
        response.set_header("X-Late", "1")   →  HeadersFrozenError

=============================================================================
SERIALIZATION FORMAT
=============================================================================

    HTTP/1.1 404 Not Found\r\n                  ← Status line
    Content-Type: text/plain; charset=utf-8\r\n  ← Headers, in insertion order
    X-Content-Type-Options: nosniff\r\n
    Content-Length: 19\r\n                       ← Auto-added
    Date: Mon, 19 Oct 2026 09:30:00 GMT\r\n      ← Auto-added
    Server: frontdoor/1.0\r\n                    ← Auto-added
    \r\n
    404 page not found\n                         ← Body

=============================================================================
ERROR RESPONSES
=============================================================================

Error responses are deliberately plain: a text/plain body holding the
status phrase, plus "X-Content-Type-Options: nosniff" so a browser never
tries to render it as HTML. The server never leaks exception details to
the client; those go to the error log.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from http import HTTPStatus
from typing import Any, Dict, Union
import json

from .headers import Headers


DEFAULT_SERVER_NAME = "frontdoor/1.0"


def status_phrase(status: int) -> str:
    """Reason phrase for a status code ("" for unknown codes)."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


@dataclass
class HTTPResponse:
    """
    An HTTP response on its way to the client.

    Attributes:
        status:  Status code (an int or http.HTTPStatus member)
        headers: Case-insensitive Headers, written out in insertion order
        body:    Body bytes
        version: Protocol version for the status line
    """

    status: int = HTTPStatus.OK
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    version: str = "HTTP/1.1"

    def __post_init__(self):
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {status_phrase(self.status)}"

    @property
    def committed(self) -> bool:
        """True once the connection has started writing this response."""
        return self.headers.frozen

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a header. Returns self for chaining.

        Raises:
            HeadersFrozenError: If the response was already committed.
        """
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def commit(self) -> "HTTPResponse":
        """Freeze the headers. Called by the connection right before writing."""
        self.headers.freeze()
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Length, Date and Server are filled in when absent. The
        response's own headers are not modified.
        """
        wire_headers = self.headers.copy()
        wire_headers.setdefault("Content-Length", str(len(self.body)))
        wire_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        wire_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in wire_headers.items())
        lines.append("")

        head = "\r\n".join(lines).encode("iso-8859-1") + b"\r\n"
        return head + self.body


class ResponseBuilder:
    """
    Fluent builder for responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .html("<h1>Products</h1>")
            .header("Cache-Control", "no-store")
            .build())
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers = Headers()
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = "text/plain; charset=utf-8"
        return self

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html.encode("utf-8")
        self._headers["Content-Type"] = "text/html; charset=utf-8"
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Set "Connection: close" so the server drops the connection after sending."""
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(status=self._status, headers=self._headers, body=self._body)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always in GMT.

    Example: "Mon, 19 Oct 2026 09:30:00 GMT"
    """
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def error_response(status: int, message: str = "") -> HTTPResponse:
    """
    A plain-text error response.

    The body is the message (the status phrase by default) followed by a
    newline, served as text/plain with content sniffing disabled.
    """
    text = message or status_phrase(status)
    return (ResponseBuilder()
        .status(status)
        .text(text + "\n")
        .header("X-Content-Type-Options", "nosniff")
        .build())


def not_found() -> HTTPResponse:
    """404 response for requests no route matches."""
    return error_response(HTTPStatus.NOT_FOUND, "404 page not found")


def internal_error() -> HTTPResponse:
    """Generic 500 response. Never carries fault details."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
