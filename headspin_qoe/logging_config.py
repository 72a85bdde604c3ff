"""Console logging for the HeadSpin integration."""

import logging
from typing import Any, Optional

from rich.pretty import pretty_repr

LOGGER_NAME = "headspin_qoe"
LOG_FORMAT = "HEADSPIN %(levelname)s: %(message)s"


def setup_basic_logging(
    level: int = logging.INFO,
    logger_instance: Optional[logging.Logger] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    Attach a console handler to the package logger.

    Calling it again only updates the level.

    Args:
        level: Log level for the logger and its handler
        logger_instance: Logger to configure (defaults to the package logger)
        console_output: Whether to add a stream handler

    Returns:
        The configured logger
    """
    logger = logger_instance or logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    handler = next((h for h in logger.handlers if getattr(h, "_headspin_console", False)), None)
    if handler is None and console_output:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._headspin_console = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    if handler is not None:
        handler.setLevel(level)

    return logger


def remove_console_handler(logger_instance: Optional[logging.Logger] = None) -> None:
    """Detach the handler added by setup_basic_logging, if any."""
    logger = logger_instance or logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_headspin_console", False):
            logger.removeHandler(handler)
            handler.close()


def render(value: Any) -> str:
    """Human readable rendering of a request or response body."""
    if value is None or value == {}:
        return "<empty>"
    if isinstance(value, (bytes, str)):
        text = value.decode("utf-8", "replace") if isinstance(value, bytes) else value
        return text or "<empty>"
    return pretty_repr(value, max_width=100)


__all__ = ["LOGGER_NAME", "LOG_FORMAT", "remove_console_handler", "render", "setup_basic_logging"]
