"""
Unit tests for HTTP response building.
"""

from datetime import datetime, timezone
from http import HTTPStatus
import json

import pytest

from frontdoor.http import HeadersFrozenError
from frontdoor.http.response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    not_found,
    internal_error,
    format_http_date,
    status_phrase,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: frontdoor/1.0\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_sets_content_length(self):
        """Test that Content-Length is auto-set."""
        response = HTTPResponse(body=b"hello world")
        result = response.to_bytes()

        assert b"Content-Length: 11\r\n" in result

    def test_to_bytes_does_not_modify_headers(self):
        response = HTTPResponse(body=b"x")
        response.to_bytes()

        assert "Content-Length" not in response.headers

    def test_to_bytes_custom_server_name(self):
        assert b"Server: shop\r\n" in HTTPResponse().to_bytes(server_name="shop")

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"


class TestCommit:
    """Headers freeze once the response is committed."""

    def test_mutable_before_commit(self):
        response = HTTPResponse()
        response.set_header("X-Late", "ok")

        assert not response.committed

    def test_set_header_after_commit_raises(self):
        response = HTTPResponse().commit()

        assert response.committed
        with pytest.raises(HeadersFrozenError):
            response.set_header("X-Late", "1")

    def test_serialization_after_commit(self):
        response = HTTPResponse(body=b"hi").commit()

        assert b"Content-Length: 2\r\n" in response.to_bytes()


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        response = ResponseBuilder().status(HTTPStatus.CREATED).build()
        assert response.status == 201

    def test_json_body(self):
        response = ResponseBuilder().json({"key": "value"}).build()

        assert response.headers["Content-Type"] == "application/json; charset=utf-8"
        assert json.loads(response.body) == {"key": "value"}

    def test_html_body(self):
        response = ResponseBuilder().html("<h1>Hello</h1>").build()

        assert "text/html" in response.headers["Content-Type"]
        assert response.body == b"<h1>Hello</h1>"

    def test_text_body(self):
        response = ResponseBuilder().text("Hello").build()

        assert "text/plain" in response.headers["Content-Type"]
        assert response.body == b"Hello"

    def test_close_connection(self):
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_method_chaining(self):
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("X-Custom", "value")
            .headers({"Cache-Control": "no-store"})
            .body("plain")
            .build())

        assert response.status == 200
        assert response.headers["X-Custom"] == "value"
        assert response.headers["cache-control"] == "no-store"
        assert response.body == b"plain"


class TestErrorResponses:
    """Plain-text error responses."""

    def test_not_found(self):
        response = not_found()

        assert response.status == 404
        assert response.body == b"404 page not found\n"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_internal_error(self):
        response = internal_error()

        assert response.status == 500
        assert response.body == b"Internal Server Error\n"

    def test_error_response_defaults_to_phrase(self):
        assert error_response(HTTPStatus.BAD_REQUEST).body == b"Bad Request\n"

    def test_status_phrase_unknown(self):
        assert status_phrase(599) == ""
        assert status_phrase(418) == "I'm a Teapot"


class TestFormatHTTPDate:

    def test_format(self):
        dt = datetime(2026, 10, 19, 9, 30, 0, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Mon, 19 Oct 2026 09:30:00 GMT"
