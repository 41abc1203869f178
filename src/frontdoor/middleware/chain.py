"""
=============================================================================
MIDDLEWARE CHAINS
=============================================================================

A middleware is a function from one handler to another:

    Handler    = Callable[[HTTPRequest], HTTPResponse]
    Middleware = Callable[[Handler], Handler]

A Chain is an ordered list of middleware that can be applied to a base
handler in one step.

=============================================================================
COMPOSITION ORDER
=============================================================================

    chain = Chain(recover, log, secure)
    handler = chain.then(router)

is exactly

    handler = recover(log(secure(router)))

so the FIRST middleware is the OUTERMOST layer:

    ┌─────────────────────────────────────────────────────────┐
    │  recover                                                │
    │  ┌───────────────────────────────────────────────────┐  │
    │  │  log                                              │  │
    │  │  ┌─────────────────────────────────────────────┐  │  │
    │  │  │  secure                                     │  │  │
    │  │  │  ┌─────────────────────────────────────┐    │  │  │
    │  │  │  │              router                 │    │  │  │
    │  │  │  └─────────────────────────────────────┘    │  │  │
    │  │  └─────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────┘

    Request  flows inward:   recover → log → secure → router
    Response flows outward:  router → secure → log → recover

The outermost layer sees the request first and the response (or the
exception) last. That is why panic recovery goes first: it is the only
position from which it can catch faults raised by every other layer.

=============================================================================
LAWS
=============================================================================

    Identity:       Chain().then(h) is h
    Associativity:  Chain(a, b).append(c).then(h)  ≡  Chain(a, b, c).then(h)
                    Chain(a).extend(Chain(b, c)).then(h)  ≡  Chain(a, b, c).then(h)

Chains are immutable values: append() and extend() return NEW chains and
leave the original untouched, so a base chain can be shared and
specialised freely:

    standard = Chain(recover, log)
    with_auth = standard.append(require_login)    # standard is unchanged

=============================================================================
INTERVIEW QUESTIONS ABOUT MIDDLEWARE
=============================================================================

Q: "Why compose middleware from an explicit list instead of nesting calls?"
A: "The order is visible in one place and can be tested on its own.
   Nested calls hide the order inside the call stack."

Q: "Why is the empty chain the identity?"
A: "Wrapping with nothing should change nothing. It also means an
   extension point can exist in the code before anything uses it."

=============================================================================
"""

from typing import Callable, Iterator, Tuple
import functools

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.router import Handler


Middleware = Callable[[Handler], Handler]

# The pipeline-style signature: (request, next) -> response
NextHandler = Handler
PipelineFunc = Callable[[HTTPRequest, NextHandler], HTTPResponse]


class Chain:
    """
    An immutable, ordered sequence of middleware.

    Usage:
        standard = Chain(RecoverPanic(app.server_error), LogRequest(app.info_log))
        handler = standard.then(router)
    """

    __slots__ = ("_middleware",)

    def __init__(self, *middleware: Middleware):
        self._middleware: Tuple[Middleware, ...] = tuple(middleware)

    def then(self, handler: Handler) -> Handler:
        """
        Compose the chain around handler.

        The list is folded from the innermost middleware outwards, so
        that the first middleware ends up outermost. An empty chain
        returns handler itself.
        """
        for middleware in reversed(self._middleware):
            handler = middleware(handler)
        return handler

    def append(self, *middleware: Middleware) -> "Chain":
        """New chain with middleware added after the existing ones."""
        return Chain(*self._middleware, *middleware)

    def extend(self, other: "Chain") -> "Chain":
        """New chain running this chain's middleware, then other's."""
        return Chain(*self._middleware, *other)

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)

    def __repr__(self) -> str:
        names = ", ".join(getattr(m, "__name__", type(m).__name__) for m in self._middleware)
        return f"Chain({names})"


def middleware(func: PipelineFunc) -> Middleware:
    """
    Turn a (request, next) function into a Handler -> Handler middleware.

    Handy for one-off middleware:

        @middleware
        def add_server_timing(request, next):
            response = next(request)
            response.set_header("Server-Timing", "app;dur=1")
            return response

        chain = Chain(add_server_timing)
    """
    @functools.wraps(func)
    def wrap(next_handler: Handler) -> Handler:
        def handler(request: HTTPRequest) -> HTTPResponse:
            return func(request, next_handler)
        return handler
    return wrap
