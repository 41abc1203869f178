"""
=============================================================================
HTTP HEADERS
=============================================================================

A case-insensitive, insertion-ordered header mapping shared by requests
and responses.

=============================================================================
WHY NOT A PLAIN DICT?
=============================================================================

HTTP header names are case-insensitive (RFC 7230 §3.2):

    Content-Type: text/html
    content-type: text/html      ← the SAME header
    CONTENT-TYPE: text/html      ← still the same header

A plain dict treats these as three different keys. We index entries by
the lowercased name but remember the casing the caller used, so headers
are written out the way they were set:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Headers internals                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   headers["X-Frame-Options"] = "DENY"                               │
    │                                                                      │
    │   _items = {                                                        │
    │       "x-frame-options": ("X-Frame-Options", "DENY"),               │
    │        ───────┬───────    ───────┬────────   ──┬──                   │
    │          lookup key       write-out name     value                   │
    │   }                                                                  │
    │                                                                      │
    │   headers["x-frame-options"]  → "DENY"                              │
    │   list(headers)               → ["X-Frame-Options"]                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

dict preserves insertion order, so the write-out order is the order in
which headers were first set.

=============================================================================
FREEZING
=============================================================================

Once the first byte of a response hits the socket, its headers are on the
wire and can't be changed. freeze() turns every later mutation into a
HeadersFrozenError instead of silently losing the change. Parsed request
headers are frozen straight away: a request is read-only while it is
being dispatched.

=============================================================================
"""

from typing import Dict, Iterable, Iterator, MutableMapping, Optional, Tuple, Union


class HeadersFrozenError(RuntimeError):
    """Raised when headers are modified after they were sent (or sealed)."""


HeaderSource = Union[MutableMapping[str, str], Iterable[Tuple[str, str]], None]


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive header mapping that keeps insertion order.

    Usage:
        headers = Headers({"Content-Type": "text/plain"})
        headers["content-type"]          # "text/plain"
        headers["X-Request-Id"] = "abc"
        list(headers.items())            # [("Content-Type", ...), ("X-Request-Id", "abc")]
    """

    def __init__(self, source: HeaderSource = None):
        self._items: Dict[str, Tuple[str, str]] = {}
        self._frozen = False

        if source is None:
            return
        pairs = source.items() if hasattr(source, "items") else source
        for name, value in pairs:
            self[name] = value

    # =========================================================================
    # MAPPING PROTOCOL
    # =========================================================================

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __setitem__(self, name: str, value: str) -> None:
        self._check_mutable()
        key = name.lower()
        existing = self._items.get(key)
        # Re-setting a header keeps its original position and casing
        self._items[key] = (existing[0] if existing else name, str(value))

    def __delitem__(self, name: str) -> None:
        self._check_mutable()
        del self._items[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    # =========================================================================
    # HTTP-SPECIFIC HELPERS
    # =========================================================================

    def add(self, name: str, value: str) -> None:
        """
        Append a value to a header, comma-joining repeats.

        Per RFC 7230, repeated headers are equivalent to one header with
        comma-separated values:
            Accept: text/html
            Accept: application/json   →   Accept: text/html, application/json
        """
        if name in self:
            self[name] = f"{self[name]}, {value}"
        else:
            self[name] = value

    def get_first(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first comma-separated element of a header value."""
        value = self.get(name)
        if value is None:
            return default
        return value.split(",")[0].strip()

    def copy(self) -> "Headers":
        """Return an unfrozen copy."""
        return Headers(self.items())

    # =========================================================================
    # FREEZING
    # =========================================================================

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "Headers":
        """Reject any further mutation. Returns self for chaining."""
        self._frozen = True
        return self

    def _check_mutable(self) -> None:
        if self._frozen:
            raise HeadersFrozenError("headers already sent; they can no longer be modified")
