"""Handler setup for the harness logger."""

import logging
import sys

from cliharness.logging.formatters import StreamFormatter

HARNESS_LOGGER = "cliharness"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = logging.WARNING) -> logging.Handler:
    """Attach a stderr handler with ``StreamFormatter`` to the harness logger.

    Calling it again replaces the handler installed by the previous call
    instead of adding a second one.

    Parameters
    ----------
    level : str | int
        Level name or number for the harness logger

    Returns
    -------
    logging.Handler
        The installed handler

    Raises
    ------
    ValueError
        If ``level`` is not a known level name
    """
    if isinstance(level, str):
        level_name = level.upper()
        numeric = logging.getLevelName(level_name)
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: {level}")
        level = numeric

    harness_logger = logging.getLogger(HARNESS_LOGGER)
    for handler in list(harness_logger.handlers):
        if getattr(handler, "_cliharness_handler", False):
            harness_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StreamFormatter(LOG_FORMAT))
    handler._cliharness_handler = True
    harness_logger.addHandler(handler)
    harness_logger.setLevel(level)
    return handler
