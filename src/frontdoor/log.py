"""
=============================================================================
LOGGING SETUP
=============================================================================

Two loggers, two streams:

    ┌──────────────────┬────────┬───────────────────────────────────────────┐
    │ <ns>.info        │ stdout │ INFO\t2026/10/19 09:30:00 <message>         │
    │ <ns>.error       │ stderr │ ERROR\t2026/10/19 09:30:00 app.py:57: <msg> │
    └──────────────────┴────────┴───────────────────────────────────────────┘

The info log carries startup messages and one access line per request.
The error log carries faults, with the source location of the call and
the traceback when one is attached.

Both loggers are shared by every connection thread. logging.Handler
serializes emit() with a per-handler lock, so concurrent records never
interleave.

Both set propagate=False: their records must not be printed a second
time by whatever the root logger is configured to do.

=============================================================================
"""

import logging
import sys
from typing import Optional, TextIO, Tuple, Union


INFO_FORMAT = "%(levelname)s\t%(asctime)s %(message)s"
ERROR_FORMAT = "%(levelname)s\t%(asctime)s %(filename)s:%(lineno)d: %(message)s"
DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def _attach(logger: logging.Logger, stream: TextIO, fmt: str, level: int):
    # Reconfiguring replaces handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def configure_logging(
    name: str = "frontdoor",
    level: Union[str, int] = "INFO",
    info_stream: Optional[TextIO] = None,
    error_stream: Optional[TextIO] = None,
) -> Tuple[logging.Logger, logging.Logger]:
    """
    Build the info and error loggers under the `name` namespace.

    Args:
        name: Namespace; the loggers are "<name>.info" and "<name>.error".
        level: Level for both loggers and for the namespace's own
               diagnostics (logging.getLogger(__name__) in each module).
        info_stream: Defaults to sys.stdout.
        error_stream: Defaults to sys.stderr.

    Returns:
        (info_log, error_log)
    """
    resolved = _resolve_level(level)

    info_log = logging.getLogger(f"{name}.info")
    error_log = logging.getLogger(f"{name}.error")

    _attach(info_log, info_stream or sys.stdout, INFO_FORMAT, resolved)
    _attach(error_log, error_stream or sys.stderr, ERROR_FORMAT, resolved)

    logging.getLogger(name).setLevel(resolved)

    return info_log, error_log
