"""Logging configuration using loguru.

Progress lines from the engine go to stderr in a short format meant for a
terminal; ``--verbose`` switches to a debugging format with the call site.
Stdlib logging is intercepted so that httpx and anything else using
``logging`` flows through the same sink.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger


class _InterceptHandler(logging.Handler):
    """Bridge stdlib logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk the call stack so loguru reports the real call-site
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


_FORMAT = "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> {message}"
_VERBOSE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(level: str = "INFO", *, verbose: bool = False) -> None:
    """Configure loguru as the sole logging sink.

    Call this once per CLI invocation, before any engine work starts.
    ``verbose`` forces DEBUG, adds the emitting function to every line, and
    lets HTTP client request logs through.
    """
    level = "DEBUG" if verbose else level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=_VERBOSE_FORMAT if verbose else _FORMAT)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    # Request-level chatter from the GitHub / archive clients
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.NOTSET if verbose else logging.WARNING)

    logger.debug("Logging initialised (level={})", level)
