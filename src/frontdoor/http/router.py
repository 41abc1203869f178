"""
=============================================================================
URL ROUTER
=============================================================================

Maps (HTTP method, URL pattern) pairs to handlers.

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request: GET /products                                    │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  Route table (registration order)                            │   │
    │   │                                                              │   │
    │   │   1. GET  /          → home                                  │   │
    │   │   2. GET  /products  → products          ← FIRST MATCH       │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   dynamic chain(products)(request)                                   │
    │                                                                      │
    │   No match (wrong path OR wrong method) → 404, no handler runs       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PATTERN SYNTAX
=============================================================================

    /products           STATIC   - segment must match literally
    /products/:id       PARAM    - binds exactly one path component
    /assets/*filepath   WILDCARD - binds the rest of the path (last segment only)

Patterns compile to anchored regexes:

    /products/:id   →   ^/products/(?P<id>[^/]+)$

=============================================================================
FIRST MATCH WINS
=============================================================================

Routes are tried in the order they were registered, and the first one
whose method AND pattern match is used. Register specific patterns before
general ones:

    router.get("/products/featured", featured)   # must come first
    router.get("/products/:id", product)         # would shadow it otherwise

A path that exists under a different method is still a 404. There is no
405 Method Not Allowed distinction.

=============================================================================
THE DYNAMIC CHAIN
=============================================================================

A router can be given a Chain of middleware that applies only to routed
handlers (the place per-route concerns such as authentication plug in).
Every handler is wrapped by that chain when it is registered, so dispatch
itself does no composition work.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Dict, List
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found


logger = logging.getLogger(__name__)

# A function that takes a request and returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route.

    handler is the route's handler already wrapped in the router's dynamic
    chain; target is the handler as it was registered.
    """

    method: str
    pattern: str
    handler: Handler
    target: Handler

    _regex: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """A successful match: the route plus the bound path parameters."""

    route: Route
    params: Dict[str, str]


class Router:
    """
    Method + pattern router with first-match dispatch.

    Usage:
        router = Router(chain=Chain(require_login))

        @router.get("/")
        def home(request):
            return ResponseBuilder().text("home").build()

        router.seal()
        response = router(request)   # a Router is itself a Handler

    Once seal() is called the route table is read-only; it is then shared
    by every connection thread without locking.
    """

    def __init__(self, chain=None, not_found_handler: Optional[Handler] = None):
        """
        Args:
            chain: Optional middleware Chain applied to every route handler.
            not_found_handler: Handler for unmatched requests (default: 404).
        """
        self._chain = chain
        self._not_found = not_found_handler or (lambda request: not_found())
        self._routes: List[Route] = []
        self._sealed = False

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(self, method: str, pattern: str, handler: Handler) -> Route:
        """
        Register handler for (method, pattern).

        Raises:
            RuntimeError: If the router has been sealed.
            ValueError: If the pattern is malformed.
        """
        if self._sealed:
            raise RuntimeError("router is sealed; routes can only be added during startup")
        if not pattern.startswith("/"):
            raise ValueError(f"Route pattern must start with '/': {pattern!r}")

        regex, param_names = self._compile_pattern(pattern)
        wrapped = self._chain.then(handler) if self._chain is not None else handler

        route = Route(
            method=method.upper(),
            pattern=pattern,
            handler=wrapped,
            target=handler,
            _regex=regex,
            _param_names=param_names,
        )
        self._routes.append(route)
        logger.debug(f"Registered route {route.method} {route.pattern}")
        return route

    def _compile_pattern(self, pattern: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile a route pattern into an anchored regex.

            "/products/:id"   →   ^/products/(?P<id>[^/]+)$
            "/assets/*path"   →   ^/assets/(?P<path>.*)$
            "/"               →   ^/$
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        segments = pattern.split("/")[1:]
        for index, segment in enumerate(segments):
            regex_parts.append("/")

            if segment.startswith(":"):
                name = segment[1:]
                if not name.isidentifier():
                    raise ValueError(f"Invalid parameter name in pattern {pattern!r}")
                param_names.append(name)
                regex_parts.append(f"(?P<{name}>[^/]+)")

            elif segment.startswith("*"):
                if index != len(segments) - 1:
                    raise ValueError(f"Wildcard must be the last segment: {pattern!r}")
                name = segment[1:] or "wildcard"
                param_names.append(name)
                regex_parts.append(f"(?P<{name}>.*)")

            else:
                regex_parts.append(re.escape(segment))

        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names

    def seal(self) -> "Router":
        """Freeze the route table. Returns self."""
        self._sealed = True
        return self

    @property
    def sealed(self) -> bool:
        return self._sealed

    # =========================================================================
    # MATCHING AND DISPATCH
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        First route whose method and pattern both match, or None.

        Methods compare exactly (after uppercasing); paths are matched
        literally, so "/products/" is not "/products".
        """
        method = method.upper()
        for route in self._routes:
            if route.method != method:
                continue
            found = route._regex.match(path)
            if found:
                return RouteMatch(route=route, params=found.groupdict())
        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request.

        Runs the matched route's (chain-wrapped) handler with path
        parameters bound on a copy of the request; otherwise the
        not-found handler.
        """
        match = self.match(request.method, request.path)
        if match is None:
            return self._not_found(request)

        if match.params:
            request = replace(request, path_params=match.params)
        return match.route.handler(request)

    __call__ = handle

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(self, method: str, pattern: str) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(). Returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, pattern, handler)
            return handler
        return decorator

    def get(self, pattern: str) -> Callable[[Handler], Handler]:
        return self.route("GET", pattern)

    def post(self, pattern: str) -> Callable[[Handler], Handler]:
        return self.route("POST", pattern)

    def put(self, pattern: str) -> Callable[[Handler], Handler]:
        return self.route("PUT", pattern)

    def delete(self, pattern: str) -> Callable[[Handler], Handler]:
        return self.route("DELETE", pattern)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """Registered routes in registration order."""
        return list(self._routes)

    def describe(self) -> List[str]:
        """One "METHOD  /pattern" line per route; Application.routes() logs them."""
        return [f"{route.method:8} {route.pattern}" for route in self._routes]
