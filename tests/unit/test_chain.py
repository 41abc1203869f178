"""
Unit tests for middleware chains.
"""

from typing import List

from frontdoor.http import HTTPRequest, HTTPResponse, ResponseBuilder
from frontdoor.middleware import Chain, middleware


def tracing(name: str, trace: List[str]):
    """A middleware that records when it is entered and left."""
    def wrap(next_handler):
        def handler(request):
            trace.append(f"{name}>")
            response = next_handler(request)
            trace.append(f"<{name}")
            return response
        return handler
    wrap.__name__ = name
    return wrap


def make_base(trace: List[str]):
    def base(request: HTTPRequest) -> HTTPResponse:
        trace.append("handler")
        return ResponseBuilder().text("ok").build()
    return base


def run(handler) -> HTTPResponse:
    return handler(HTTPRequest(method="GET", path="/"))


class TestChainComposition:
    """Order, identity and associativity."""

    def test_first_middleware_is_outermost(self):
        trace: List[str] = []
        chain = Chain(tracing("a", trace), tracing("b", trace), tracing("c", trace))

        run(chain.then(make_base(trace)))

        assert trace == ["a>", "b>", "c>", "handler", "<c", "<b", "<a"]

    def test_empty_chain_is_identity(self):
        trace: List[str] = []
        base = make_base(trace)

        assert Chain().then(base) is base

    def test_append_then_compose_equals_full_list(self):
        appended: List[str] = []
        direct: List[str] = []

        chain = Chain(tracing("a", appended), tracing("b", appended)).append(tracing("c", appended))
        run(chain.then(make_base(appended)))

        run(Chain(tracing("a", direct), tracing("b", direct), tracing("c", direct)).then(make_base(direct)))

        assert appended == direct

    def test_extend_equals_full_list(self):
        extended: List[str] = []
        direct: List[str] = []

        chain = Chain(tracing("a", extended)).extend(Chain(tracing("b", extended), tracing("c", extended)))
        run(chain.then(make_base(extended)))

        run(Chain(tracing("a", direct), tracing("b", direct), tracing("c", direct)).then(make_base(direct)))

        assert extended == direct

    def test_append_does_not_modify_original(self):
        trace: List[str] = []
        standard = Chain(tracing("a", trace))
        extended = standard.append(tracing("b", trace))

        assert len(standard) == 1
        assert len(extended) == 2

    def test_then_twice_gives_equivalent_handlers(self):
        first: List[str] = []
        second: List[str] = []
        chain_a = Chain(tracing("a", first))
        chain_b = Chain(tracing("a", second))

        run(chain_a.then(make_base(first)))
        run(chain_a.then(make_base(first)))
        run(chain_b.then(make_base(second)))
        run(chain_b.then(make_base(second)))

        assert first == second


class TestMiddlewareDecorator:
    """Tests for the (request, next) adapter."""

    def test_pipeline_function_becomes_middleware(self):
        @middleware
        def add_marker(request, next):
            response = next(request)
            response.set_header("X-Marker", "1")
            return response

        handler = Chain(add_marker).then(lambda request: ResponseBuilder().text("ok").build())
        response = run(handler)

        assert response.headers["X-Marker"] == "1"

    def test_can_short_circuit(self):
        @middleware
        def deny(request, next):
            return ResponseBuilder().status(403).text("no").build()

        called = []
        handler = Chain(deny).then(lambda request: called.append(True))

        assert run(handler).status == 403
        assert called == []

    def test_repr_lists_names(self):
        trace: List[str] = []
        chain = Chain(tracing("recover", trace), tracing("log", trace))

        assert repr(chain) == "Chain(recover, log)"
