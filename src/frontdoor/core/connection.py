"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module handles individual client connections, wrapping the raw (or
TLS-wrapped) socket with a higher-level API for HTTP request/response
handling, and enforcing the connection's DEADLINES.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. One recv() may return half a
request line, or two pipelined requests at once:

    Client sends:    "GET / HTTP/1.1\r\nHost: a\r\n\r\n"

    Server might receive:
        recv() → "GET / HT"
        recv() → "TP/1.1\r\nHost: a\r\n\r\n"

So the connection BUFFERS bytes until it sees the blank line that ends
the headers, then reads exactly Content-Length more bytes. Anything past
that belongs to the next request and stays in the buffer.

=============================================================================
DEADLINES
=============================================================================

A slow client must not be able to hold a thread forever. Every blocking
socket operation runs against an ABSOLUTE deadline, not a per-call
timeout. A client that trickles one byte every second never resets the
clock.

    accept                                       next request
      │                                               │
      │◄──────── read_timeout ────────►│              │
      │  TLS handshake + request line  │              │
      │  + headers + body              │              │
      │                                │              │
      │◄──────────── write_timeout ────────────►│     │
      │                          response bytes │     │
      │                                         │     │
      │                                         │◄ idle_timeout ►│
      │                                         │  no bytes yet  │
                                                              first byte
                                                                  │
                                                                  │◄── read_timeout ──►

    ┌──────────┬────────────────────────────────────────────────────────┐
    │ Phase    │ Clock                                                  │
    ├──────────┼────────────────────────────────────────────────────────┤
    │ read     │ First request: from accept (covers the TLS handshake). │
    │          │ Keep-alive: from the first byte of the next request.   │
    │ write    │ From the moment the request read started.              │
    │ idle     │ From the end of the previous response until the first │
    │          │ byte of the next request.                              │
    └──────────┴────────────────────────────────────────────────────────┘

A missed deadline raises DeadlineExceeded. The server answers it with a
HARD close: no response is written, the socket is simply torn down.

=============================================================================
KEEP-ALIVE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────┐
    │                    With Keep-Alive (HTTP/1.1)                    │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   TCP Connect + TLS handshake                                    │
    │       │                                                          │
    │       ├── Request 1: Send → Receive                              │
    │       ├── (idle)                                                 │
    │       ├── Request 2: Send → Receive                              │
    │       │                                                          │
    │   Close (client done, Connection: close, or idle deadline)       │
    │                                                                  │
    │   Only one TCP and TLS handshake for many requests!              │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► HANDSHAKE ──► READING ──► PROCESSING ──► WRITING ──► IDLE ─┐
     │          │            │                          │         │    │
     │          │            │           (deadline)     │         │    │
     │          ▼            ▼                          ▼         ▼    │
     └────────► CLOSED ◄─────┴──────────────────────────┴─────────┘    │
                                         READING ◄──────────────────────┘

=============================================================================
"""

import socket
import ssl
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.request import HTTPParseError


logger = logging.getLogger(__name__)

# Total time close() spends discarding bytes the client still sends
DRAIN_TIMEOUT = 0.5


class DeadlineExceeded(TimeoutError):
    """
    A connection deadline passed.

    Attributes:
        phase: Which deadline: "read", "write", "idle" or "drain".
        limit: The configured limit in seconds.
    """

    def __init__(self, phase: str, limit: float):
        super().__init__(f"{phase} deadline of {limit:g}s exceeded")
        self.phase = phase
        self.limit = limit


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""
    NEW = "new"                # Just accepted
    HANDSHAKE = "handshake"    # TLS handshake in progress
    READING = "reading"        # Reading request bytes
    PROCESSING = "processing"  # Request parsed, handler is executing
    WRITING = "writing"        # Sending response bytes
    IDLE = "idle"              # Response sent, waiting for the next request
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    A client connection with buffered reads and deadline enforcement.

    Attributes:
        socket: The client socket (replaced by an SSLSocket after handshake()).
        address: Client's (ip, port) tuple.
        id: Short connection identifier (for logging).
        accepted_at: time.monotonic() at accept; the first read deadline
                     counts from here.
        requests_handled: Number of requests read on this connection.
    """

    # Required parameters
    socket: socket.socket
    address: tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    accepted_at: float = field(default_factory=time.monotonic)
    requests_handled: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    read_timeout: float = 5.0
    write_timeout: float = 10.0
    idle_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    # Internal state
    _buffer: bytes = field(default=b"", repr=False)
    _read_deadline: Optional[float] = field(default=None, repr=False)
    _write_deadline: Optional[float] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self._read_deadline = self.accepted_at + self.read_timeout
        self._write_deadline = self.accepted_at + self.write_timeout

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def peer(self) -> str:
        """Remote peer as "ip:port"."""
        return f"{self.address[0]}:{self.address[1]}"

    # =========================================================================
    # DEADLINES
    # =========================================================================

    def _arm(self, deadline: float, phase: str, limit: float):
        """Set the socket timeout to whatever is left before deadline."""
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise DeadlineExceeded(phase, limit)
        self.socket.settimeout(remaining)

    # =========================================================================
    # TLS
    # =========================================================================

    def handshake(self, context: ssl.SSLContext):
        """
        Wrap the socket in TLS and complete the server-side handshake.

        The handshake runs on the connection's own thread (never on the
        accept loop) and counts against the first request's read deadline.

        Raises:
            DeadlineExceeded: The client did not finish the handshake in time.
            ssl.SSLError: The handshake failed.
        """
        self.state = ConnectionState.HANDSHAKE
        self.socket = context.wrap_socket(
            self.socket,
            server_side=True,
            do_handshake_on_connect=False,
        )
        self._arm(self._read_deadline, "read", self.read_timeout)
        try:
            self.socket.do_handshake()
        except socket.timeout:
            raise DeadlineExceeded("read", self.read_timeout) from None
        logger.debug(f"[{self.id}] TLS established: {self.socket.version()}")

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    read_request() Flow                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   keep-alive and buffer empty?                                   │
        │       └──► wait up to idle_timeout for the first byte            │
        │            └── read deadline = first byte + read_timeout         │
        │                                                                  │
        │   while no \r\n\r\n:   recv() → buffer   (read deadline)         │
        │   parse Content-Length                                           │
        │   while body incomplete: recv() → buffer (read deadline)         │
        │   slice off one request, keep the rest for the next call         │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Returns:
            Complete request bytes, or None if the client closed the
            connection cleanly between requests.

        Raises:
            DeadlineExceeded: The idle or read deadline passed.
            HTTPParseError: 413 if the request exceeds max_request_size,
                            400 if the client hung up mid-request.
        """
        if self.requests_handled > 0:
            started = self._wait_for_first_byte()
            if started is None:
                return None
            self._read_deadline = started + self.read_timeout
            self._write_deadline = started + self.write_timeout

        self.state = ConnectionState.READING

        # ─────────────────────────────────────────────────────────────────
        # STEP 1: Read until we have complete headers
        # ─────────────────────────────────────────────────────────────────
        while b"\r\n\r\n" not in self._buffer:
            chunk = self._recv_before_deadline()
            if not chunk:
                if not self._buffer:
                    return None  # Closed before sending anything
                raise HTTPParseError("Connection closed mid-request")
            self._buffer += chunk
            self._check_size(len(self._buffer))

        header_end = self._buffer.find(b"\r\n\r\n")
        body_start = header_end + 4

        # ─────────────────────────────────────────────────────────────────
        # STEP 2: Read the body, exactly Content-Length bytes
        # ─────────────────────────────────────────────────────────────────
        content_length = self._parse_content_length(self._buffer[:header_end])
        self._check_size(body_start + content_length)

        while len(self._buffer) - body_start < content_length:
            chunk = self._recv_before_deadline()
            if not chunk:
                raise HTTPParseError("Connection closed mid-request")
            self._buffer += chunk

        # ─────────────────────────────────────────────────────────────────
        # STEP 3: Extract one request, keep leftovers (pipelining)
        # ─────────────────────────────────────────────────────────────────
        request_end = body_start + content_length
        request_data = self._buffer[:request_end]
        self._buffer = self._buffer[request_end:]

        self.requests_handled += 1
        return request_data

    def _wait_for_first_byte(self) -> Optional[float]:
        """
        Idle phase: wait for the next request to begin.

        Returns the monotonic time the request started (now, if bytes are
        already buffered), or None if the client closed the connection.
        """
        if self._buffer:
            return time.monotonic()

        self.state = ConnectionState.IDLE
        self.socket.settimeout(self.idle_timeout)
        try:
            chunk = self._recv()
        except socket.timeout:
            raise DeadlineExceeded("idle", self.idle_timeout) from None
        if not chunk:
            return None

        self._buffer = chunk
        return time.monotonic()

    def _recv_before_deadline(self) -> bytes:
        self._arm(self._read_deadline, "read", self.read_timeout)
        try:
            return self._recv()
        except socket.timeout:
            raise DeadlineExceeded("read", self.read_timeout) from None

    def _recv(self) -> bytes:
        """socket.recv(), with an abrupt disconnect reported as b""."""
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _check_size(self, size: int):
        if size > self.max_request_size:
            raise HTTPParseError(f"Request too large: {size} bytes", status_code=413)

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Content-Length from raw header bytes, 0 if absent.

        Malformed values also count as 0 here; the parser rejects them
        with a 400 once the request is complete.
        """
        for line in headers.decode("iso-8859-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(int(line.split(":", 1)[1].strip()), 0)
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write response bytes before the write deadline.

        The timeout is re-armed before every send(): SSLSocket.sendall()
        restarts the full timeout for each record it writes, so a single
        arm would not bound the whole response over TLS.

        Returns:
            True if everything was sent, False if the client went away.

        Raises:
            DeadlineExceeded: The write deadline passed (possibly mid-response).
        """
        self.state = ConnectionState.WRITING
        view = memoryview(data)
        try:
            while view:
                self._arm(self._write_deadline, "write", self.write_timeout)
                sent = self.socket.send(view)
                view = view[sent:]
            return True
        except socket.timeout:
            raise DeadlineExceeded("write", self.write_timeout) from None
        except (ConnectionResetError, BrokenPipeError) as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close gracefully after a complete response.

            1. shutdown(SHUT_WR)   Send FIN: we are done sending
            2. drain               Discard whatever the client still sends
            3. close()             Release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        # The drain has one total budget; a trickling client cannot extend it
        deadline = time.monotonic() + DRAIN_TIMEOUT
        try:
            while True:
                self._arm(deadline, "drain", DRAIN_TIMEOUT)
                if not self.socket.recv(1024):
                    break
        except OSError:
            pass  # Includes DeadlineExceeded

        self._release()

    def abort(self):
        """
        Hard close: tear the connection down without writing anything.

        Used when a deadline passes or a fault reaches the connection loop.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

        self._release()

    def _release(self):
        try:
            self.socket.close()
        except OSError:
            pass
        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

