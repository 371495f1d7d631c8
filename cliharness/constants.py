"""Global constants for cliharness.

Defaults here reproduce the behaviour of the original step definitions:
a ten second command timeout and a scratch repository at ``/tmp/TestRepo``.
"""

DEFAULT_TIMEOUT_SECONDS = 10.0
"""Command timeout applied when a scenario starts.

Every scenario resets to this value; steps may raise or lower it afterwards.
"""

DEFAULT_SCRATCH_BASE = "/tmp"
"""Directory under which the scratch workspace is created."""

DEFAULT_SCRATCH_NAME = "TestRepo"
"""Name of the scratch workspace directory."""

DEFAULT_SHELL = "/bin/sh"
"""Shell used to interpret command lines passed to ``CommandRunner.run``."""

DEFAULT_CLEAN_WORKSPACE_TAG = "clean_workspace"
"""Scenario tag that makes the harness reset the scratch workspace in setup."""

DEFAULT_LOG_LEVEL = "WARNING"

TIMEOUT_EXIT_STATUS = -9
"""Exit status recorded for commands killed on timeout.

Matches what ``subprocess`` reports for a SIGKILLed child, and can never be
produced by a process exiting on its own.
"""

TIMEOUT_TAG_PREFIX = "timeout_"
"""Prefix of scenario tags that override the timeout, e.g. ``@timeout_30``."""

KILL_DRAIN_SECONDS = 5.0
"""How long to wait for pipes to close after killing a timed-out group."""

EXIT_DRAIN_SECONDS = 1.0
"""How long to keep reading output once a command has exited.

Background jobs that inherited the output pipes can hold them open long after
the command itself finished; whatever they wrote within this window is kept.
"""

OUTPUT_TAIL_LINES = 20
"""Lines of captured output logged for a failed scenario."""

ENV_PREFIX = "CLIHARNESS_"
