"""Harness-specific exceptions.

Setup failures are fatal for the scenario that raised them. A command that
runs and exits non-zero, or that times out, is not an error and is reported
through ``CommandResult`` instead.
"""


class HarnessError(Exception):
    """Base class for all harness errors."""

    pass


class InvalidPathError(HarnessError):
    """Raised when a navigation target does not exist or is not a directory."""

    def __init__(self, path: object, reason: str = "does not exist") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid path '{path}': {reason}")


class FilesystemError(HarnessError):
    """Raised when the scratch workspace cannot be removed or recreated."""

    pass


class SpawnError(HarnessError):
    """Raised when a command cannot be launched at all.

    Distinct from a command that starts and then fails.
    """

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Could not launch '{command}': {reason}")
