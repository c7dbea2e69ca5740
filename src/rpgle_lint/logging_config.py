from __future__ import annotations

import logging
import sys

from loguru import logger

# Track if logging has been configured to prevent re-initialization
_configured = False

LOG_FORMAT = "<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> | {message}"


class InterceptHandler(logging.Handler):
    """Forwards stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level_name = logger.level(record.levelname).name
        except ValueError:
            level_name = record.levelno

        # Find caller from where the logging call originated
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level_name, record.getMessage())


def configure_logging(level: str = "WARNING", *, force: bool = False) -> None:
    """Sends diagnostics to stderr so stdout stays reserved for the report."""
    global _configured
    if _configured and not force:
        return

    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=LOG_FORMAT,
        backtrace=False,
        diagnose=False,
        colorize=None,
    )

    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(logging.getLevelName(level.upper()))

    _configured = True
    logger.debug("Logging configured: level={}", level.upper())
