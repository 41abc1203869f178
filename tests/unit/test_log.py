"""
Unit tests for logger construction.
"""

import io
import re

import pytest

from frontdoor.log import configure_logging


@pytest.fixture
def streams():
    return io.StringIO(), io.StringIO()


class TestConfigureLogging:

    def test_info_format(self, streams):
        info_stream, error_stream = streams
        info_log, _ = configure_logging("tests.log.info_format", info_stream=info_stream, error_stream=error_stream)

        info_log.info("Starting server on :4000")

        line = info_stream.getvalue().rstrip("\n")
        assert re.fullmatch(r"INFO\t\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2} Starting server on :4000", line)
        assert error_stream.getvalue() == ""

    def test_error_format_has_source_location(self, streams):
        info_stream, error_stream = streams
        _, error_log = configure_logging("tests.log.error_format", info_stream=info_stream, error_stream=error_stream)

        error_log.error("something broke")

        line = error_stream.getvalue().rstrip("\n")
        assert re.fullmatch(
            r"ERROR\t\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2} test_log\.py:\d+: something broke",
            line,
        )
        assert info_stream.getvalue() == ""

    def test_traceback_appended(self, streams):
        info_stream, error_stream = streams
        _, error_log = configure_logging("tests.log.traceback", info_stream=info_stream, error_stream=error_stream)

        try:
            raise ValueError("bad value")
        except ValueError as exc:
            error_log.error("fault", exc_info=exc)

        output = error_stream.getvalue()
        assert "Traceback (most recent call last)" in output
        assert "ValueError: bad value" in output

    def test_does_not_propagate(self, streams):
        info_log, error_log = configure_logging("tests.log.propagate", info_stream=streams[0], error_stream=streams[1])

        assert info_log.propagate is False
        assert error_log.propagate is False

    def test_reconfigure_replaces_handlers(self, streams):
        first = io.StringIO()
        configure_logging("tests.log.reconfigure", info_stream=first, error_stream=io.StringIO())
        info_log, _ = configure_logging("tests.log.reconfigure", info_stream=streams[0], error_stream=streams[1])

        info_log.info("once")

        assert len(info_log.handlers) == 1
        assert first.getvalue() == ""
        assert streams[0].getvalue().count("once") == 1

    def test_level_filters(self, streams):
        info_log, _ = configure_logging("tests.log.level", level="WARNING", info_stream=streams[0], error_stream=streams[1])

        info_log.info("hidden")

        assert streams[0].getvalue() == ""

    def test_unknown_level(self, streams):
        with pytest.raises(ValueError):
            configure_logging("tests.log.bad", level="CHATTY", info_stream=streams[0], error_stream=streams[1])
