"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from a connection into an immutable HTTPRequest.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      HTTP REQUEST STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  GET /products?page=2 HTTP/1.1\r\n          ← REQUEST LINE           │
    │  ─┬─ ───────┬──────── ───┬────                                       │
    │   │         │            │                                           │
    │ Method   Target       Version                                        │
    │                                                                      │
    │  Host: shop.example.com\r\n                 ← HEADERS                │
    │  User-Agent: curl/8.4.0\r\n                                          │
    │  Content-Length: 0\r\n                                               │
    │  \r\n                                       ← EMPTY LINE             │
    │                                             ← BODY (optional)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The request TARGET is kept verbatim (it is what the access log records as
the request URI); the PATH is the decoded target without its query
string, and is what the router matches against.

=============================================================================
IMMUTABILITY
=============================================================================

HTTPRequest is a frozen dataclass and its headers are frozen too. A
request is read by every middleware layer and by the handler, so no layer
may change what the next layer sees. The router binds path parameters by
building a NEW request with dataclasses.replace(), never by mutation.

=============================================================================
INTERVIEW QUESTIONS ABOUT HTTP PARSING
=============================================================================

Q: "How do you know when the HTTP headers end?"
A: "Headers end with an empty line (\r\n\r\n). We scan for this
   delimiter, then split the request into header section and body."

Q: "What's the difference between path and URI?"
A: "The request URI includes the query string (GET /path?query HTTP/1.1).
   The path is just /path. We keep both: one for logging, one for routing."

Q: "Why doesn't the parser reject unknown methods?"
A: "Method policy belongs to the router. An unregistered method is just
   another (method, path) pair with no route, which is a 404."

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlsplit, unquote
import re

from .headers import Headers


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code that should be returned to the client:

        400 Bad Request                - Malformed request syntax
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed, read-only HTTP request.

    Attributes:
        method:         HTTP method, uppercase ("GET", "POST", ...)
        path:           Decoded path without the query string
        target:         The request-target exactly as received ("/a?b=1")
        version:        Protocol version ("HTTP/1.1" or "HTTP/1.0")
        headers:        Case-insensitive, frozen Headers
        query_params:   Parsed query string, "?a=1&a=2" → {"a": ["1", "2"]}
        body:           Raw body bytes (exactly Content-Length of them)
        client_address: (ip, port) of the remote peer
        path_params:    Values bound by the router for ":name" segments
    """

    method: str
    path: str
    target: str = ""
    version: str = "HTTP/1.1"
    headers: Headers = field(default_factory=lambda: Headers().freeze())
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)
    path_params: Dict[str, str] = field(default_factory=dict)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def request_uri(self) -> str:
        """The URI as the client sent it (path plus query), for logging."""
        return self.target or self.path

    @property
    def remote_addr(self) -> str:
        """Remote peer as "ip:port"."""
        ip, port = self.client_address
        return f"{ip}:{port}"

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters ("application/json; charset=utf-8" → "application/json")."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open.

            HTTP/1.1: keep-alive unless "Connection: close"
            HTTP/1.0: close unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name, default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter, or default."""
        values = self.query_params.get(name, [])
        return values[0] if values else default


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        Raw bytes
            │
            ├──► 1. Size check               → 413 if too large
            ├──► 2. Split at \r\n\r\n        → 400 if missing
            ├──► 3. Parse request line       → 400 / 505
            ├──► 4. Parse headers            → frozen Headers
            ├──► 5. Slice body by Content-Length
            │
            ▼
        HTTPRequest
    """

    # Method is any uppercase token; the router decides what is served.
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_request_size: int = 1024 * 1024):
        """
        Args:
            max_request_size: Maximum accepted request size in bytes.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete HTTP request.

        Args:
            data: Raw request bytes (headers and body).
            client_address: (ip, port) of the remote peer.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Header bytes are ISO-8859-1 on the wire; this never fails to decode.
        header_section = data[:header_end].decode("iso-8859-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # ─────────────────────────────────────────────────────────────────
        # BODY: trust Content-Length only
        # ─────────────────────────────────────────────────────────────────
        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            target=target,
            version=version,
            headers=headers.freeze(),
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, str, Dict[str, list[str]], str]:
        """
        Split "METHOD SP TARGET SP VERSION" into its parts.

        Returns:
            (method, target, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parts = urlsplit(target)
        path = unquote(parts.path) or "/"
        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid request target: {target!r}")
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..")

        query_params = parse_qs(parts.query, keep_blank_values=True)
        return method, target, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Headers:
        """
        Parse "Name: value" lines into Headers.

        Repeated headers are comma-joined; obsolete line folding (a line
        starting with whitespace) continues the previous header.
        """
        headers = Headers()
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] = f"{headers[current_name]} {line.strip()}"
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line!r}")

            name, value = match.groups()
            current_name = name.strip()
            headers.add(current_name, value.strip())

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """Parse a request in one call with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
