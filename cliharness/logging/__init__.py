"""Logging helpers for the harness."""

from cliharness.logging.formatters import StreamFormatter
from cliharness.logging.handlers import configure_logging

__all__ = ["StreamFormatter", "configure_logging"]
