"""
Unit tests for request logging.
"""

import io
import logging
import re
import threading

from frontdoor.http import HTTPRequest, ResponseBuilder, Headers
from frontdoor.log import configure_logging
from frontdoor.middleware import LogRequest, format_request_line


def ok(request):
    return ResponseBuilder().text("ok").build()


class TestLogRequest:

    def test_line_format(self):
        request = HTTPRequest(
            method="GET",
            path="/products",
            target="/products?page=2",
            version="HTTP/1.1",
            client_address=("203.0.113.7", 51234),
        )

        assert format_request_line(request) == "203.0.113.7:51234 - HTTP/1.1 GET /products?page=2"

    def test_logs_once_before_handler(self, info_log, caplog):
        caplog.set_level(logging.DEBUG)
        order = []

        def handler(request):
            order.append(len([r for r in caplog.records if r.name == info_log.name]))
            return ok(request)

        LogRequest(info_log)(handler)(HTTPRequest(method="GET", path="/"))

        records = [r for r in caplog.records if r.name == info_log.name]
        assert len(records) == 1
        assert records[0].levelno == logging.INFO
        # The record already existed when the handler ran
        assert order == [1]

    def test_logs_even_when_handler_raises(self, info_log, caplog):
        caplog.set_level(logging.DEBUG)

        def handler(request):
            raise RuntimeError("boom")

        try:
            LogRequest(info_log)(handler)(HTTPRequest(method="GET", path="/"))
        except RuntimeError:
            pass

        assert len([r for r in caplog.records if r.name == info_log.name]) == 1

    def test_does_not_touch_response(self, info_log):
        response = ResponseBuilder().text("ok").build()
        before = dict(response.headers)

        result = LogRequest(info_log)(lambda request: response)(HTTPRequest(method="GET", path="/"))

        assert result is response
        assert dict(result.headers) == before

    def test_concurrent_lines_are_whole(self):
        stream = io.StringIO()
        info_log, _ = configure_logging(name="tests.concurrent", info_stream=stream, error_stream=io.StringIO())
        handler = LogRequest(info_log)(ok)

        threads_count = 16
        per_thread = 50
        barrier = threading.Barrier(threads_count)

        def worker(n: int):
            barrier.wait()
            for i in range(per_thread):
                handler(HTTPRequest(
                    method="GET",
                    path=f"/t{n}/r{i}",
                    headers=Headers({"Host": "x"}).freeze(),
                    client_address=("10.0.0.1", 40000 + n),
                ))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        lines = stream.getvalue().splitlines()
        pattern = re.compile(
            r"^INFO\t\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2} "
            r"10\.0\.0\.1:400(\d{2}) - HTTP/1\.1 GET /t(\d+)/r(\d+)$"
        )

        assert len(lines) == threads_count * per_thread
        seen = set()
        for line in lines:
            match = pattern.match(line)
            assert match, line
            port_suffix, thread_n, request_n = match.groups()
            assert int(port_suffix) == int(thread_n)
            seen.add((int(thread_n), int(request_n)))
        assert len(seen) == threads_count * per_thread
