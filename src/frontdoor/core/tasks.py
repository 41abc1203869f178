"""
=============================================================================
BACKGROUND TASKS
=============================================================================

Handlers sometimes start work that outlives the request: send an email,
warm a cache, notify another service. This module is the one sanctioned
way to do that, and it makes the fault rules explicit.

=============================================================================
THE RULE: EVERY THREAD OWNS ITS FAULTS
=============================================================================

    connection thread                      background thread
    ─────────────────                      ─────────────────
    RecoverPanic                           (nothing above it)
      └─ handler
           └─ go(task) ──────────────────►  task()
                                              └─ raises
           return 200

    The raise in task() is NOT seen by RecoverPanic. Exceptions do not
    cross threads.

An exception nobody handles in a background thread is treated as FATAL:
install_fatal_excepthook() makes threading.excepthook log it to the
error log and terminate the process. Silently losing the thread (Python's
default) would leave the process running in a state nobody understands.

A task that may fail must therefore carry its own boundary:

    go(guarded(send_receipt, app.error_log), order_id)

=============================================================================
INTERVIEW QUESTIONS ABOUT BACKGROUND WORK
=============================================================================

Q: "Why os._exit() and not sys.exit() in the hook?"
A: "sys.exit() raises SystemExit, which on a non-main thread only ends
   that thread. os._exit() ends the process immediately."

Q: "Why not catch everything in go() itself?"
A: "Then every bug in background work becomes a log line that nobody
   reads. Making the boundary explicit (guarded) forces the author to
   decide what failure means for that task."

=============================================================================
"""

from typing import Any, Callable, Optional
import functools
import logging
import os
import threading


logger = logging.getLogger(__name__)

FATAL_EXIT_CODE = 2


def go(func: Callable[..., Any], *args: Any, name: Optional[str] = None, **kwargs: Any) -> threading.Thread:
    """
    Run func(*args, **kwargs) on a new daemon thread and return the thread.

    No exception handling is added: an unhandled exception in func goes
    to threading.excepthook.
    """
    thread = threading.Thread(
        target=func,
        args=args,
        kwargs=kwargs,
        name=name or f"task-{getattr(func, '__name__', 'anonymous')}",
        daemon=True,
    )
    thread.start()
    return thread


def guarded(func: Callable[..., Any], error_log: logging.Logger) -> Callable[..., Any]:
    """
    Wrap func in its own fault boundary.

    An Exception raised by func is logged to error_log with its traceback
    and swallowed; the wrapper then returns None.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            error_log.error(
                f"background task {getattr(func, '__name__', func)!s} failed: {exc}",
                exc_info=exc,
            )
            return None
    return wrapper


def install_fatal_excepthook(
    error_log: logging.Logger,
    exit_code: int = FATAL_EXIT_CODE,
) -> Callable[[threading.ExceptHookArgs], Any]:
    """
    Make an unhandled exception in any thread fatal to the process.

    The hook logs the exception at CRITICAL with its traceback, flushes
    the error log and calls os._exit(exit_code). SystemExit is ignored,
    as with Python's default hook.

    Returns:
        The previous threading.excepthook, so callers can restore it.
    """
    previous = threading.excepthook

    def fatal_excepthook(args: threading.ExceptHookArgs):
        if args.exc_type is SystemExit:
            return

        thread_name = args.thread.name if args.thread is not None else "<unknown>"
        error_log.critical(
            f"unhandled exception in thread {thread_name}: {args.exc_value}",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        for handler in error_log.handlers:
            handler.flush()

        os._exit(exit_code)

    threading.excepthook = fatal_excepthook
    logger.debug("Fatal thread excepthook installed")
    return previous
