"""Logging formatters for captured command output."""

import logging

STREAM_TAGS = {"stdout": "[stdout] ", "stderr": "[stderr] "}
"""Prefix for each ``stream`` value the runner attaches to output lines."""


class StreamFormatter(logging.Formatter):
    """Marks lines of command output with the stream they were read from.

    Records logged by the runner carry ``extra={"stream": ...}``; anything
    else is formatted exactly as ``logging.Formatter`` would.
    """

    def format(self, record: logging.LogRecord) -> str:
        tag = STREAM_TAGS.get(getattr(record, "stream", None), "")
        return tag + super().format(record)
