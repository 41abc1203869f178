"""
Unit tests for background tasks and the fatal excepthook.
"""

import logging
import threading

import pytest

from frontdoor.core import tasks
from frontdoor.core.tasks import go, guarded, install_fatal_excepthook


@pytest.fixture
def restore_excepthook():
    previous = threading.excepthook
    yield
    threading.excepthook = previous


class TestGo:

    def test_runs_on_daemon_thread(self):
        ran_on = []
        thread = go(lambda: ran_on.append(threading.current_thread()))
        thread.join(timeout=5.0)

        assert ran_on == [thread]
        assert thread.daemon

    def test_passes_arguments(self):
        result = []
        go(lambda a, b=0: result.append(a + b), 1, b=2).join(timeout=5.0)

        assert result == [3]


class TestGuarded:

    def test_failure_logged_and_swallowed(self, error_log, caplog):
        caplog.set_level(logging.DEBUG)

        def send_receipt():
            raise ConnectionError("smtp down")

        assert guarded(send_receipt, error_log)() is None

        records = [r for r in caplog.records if r.name == error_log.name]
        assert len(records) == 1
        assert "send_receipt" in records[0].getMessage()
        assert records[0].exc_info is not None

    def test_success_returns_value(self, error_log):
        assert guarded(lambda: 42, error_log)() == 42

    def test_guarded_background_task_does_not_reach_excepthook(self, error_log, monkeypatch):
        reached = []
        monkeypatch.setattr(threading, "excepthook", lambda args: reached.append(args))

        def task():
            raise RuntimeError("handled")

        go(guarded(task, error_log)).join(timeout=5.0)

        assert reached == []


class TestFatalExcepthook:

    def test_unhandled_thread_exception_exits(self, error_log, caplog, monkeypatch, restore_excepthook):
        caplog.set_level(logging.DEBUG)
        exits = []
        monkeypatch.setattr(tasks.os, "_exit", lambda code: exits.append(code))

        install_fatal_excepthook(error_log)

        def task():
            raise RuntimeError("unrecoverable")

        go(task, name="cache-warmer").join(timeout=5.0)

        assert exits == [2]
        records = [r for r in caplog.records if r.name == error_log.name]
        assert len(records) == 1
        assert records[0].levelno == logging.CRITICAL
        assert "cache-warmer" in records[0].getMessage()

    def test_system_exit_ignored(self, error_log, monkeypatch, restore_excepthook):
        exits = []
        monkeypatch.setattr(tasks.os, "_exit", lambda code: exits.append(code))
        install_fatal_excepthook(error_log)

        def task():
            raise SystemExit(0)

        go(task).join(timeout=5.0)

        assert exits == []

    def test_returns_previous_hook(self, error_log, restore_excepthook):
        before = threading.excepthook

        assert install_fatal_excepthook(error_log) is before
