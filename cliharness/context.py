"""Per-scenario execution context."""

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from cliharness.constants import DEFAULT_TIMEOUT_SECONDS
from cliharness.exceptions import InvalidPathError

if TYPE_CHECKING:
    from cliharness.runner import CommandResult

logger = logging.getLogger(__name__)


class ExecutionContext:
    """Mutable configuration for one scenario.

    The working directory is tracked here and handed to every filesystem and
    process operation explicitly; the process-wide current directory is never
    changed.

    Parameters
    ----------
    base_directory : Path | str | None
        Directory the context falls back to on reset. Defaults to the
        process working directory at construction time.
    default_timeout : float
        Timeout restored by ``reset``

    Attributes
    ----------
    working_directory : Path
        Directory commands run in and relative paths resolve against
    timeout_seconds : float
        Deadline for each command run in this context
    environment : dict[str, str | None]
        Overrides applied on top of the host environment; ``None`` hides a
        host variable from spawned commands
    results : list[CommandResult]
        Results of commands run in this scenario, oldest first
    """

    def __init__(
        self,
        base_directory: Path | str | None = None,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if base_directory is None:
            base_directory = Path.cwd()
        self.base_directory = Path(base_directory)
        self.default_timeout = _validate_timeout(default_timeout)
        self.working_directory = self.base_directory
        self.timeout_seconds = self.default_timeout
        self.environment: dict[str, str | None] = {}
        self.results: list["CommandResult"] = []

    def reset(self) -> None:
        """Restore defaults at the start of a scenario."""
        self.timeout_seconds = self.default_timeout
        self.working_directory = self.base_directory
        self.environment.clear()
        self.results.clear()
        logger.debug(
            "Reset execution context: cwd=%s, timeout=%ss",
            self.working_directory,
            self.timeout_seconds,
        )

    def resolve(self, path: Path | str) -> Path:
        """Resolve ``path`` against the current working directory.

        Parameters
        ----------
        path : Path | str
            Absolute path, or path relative to ``working_directory``

        Returns
        -------
        Path
            Absolute, normalised path (symlinks are not resolved)
        """
        return Path(os.path.normpath(self.working_directory / Path(path)))

    def set_working_directory(self, path: Path | str) -> Path:
        """Point the context at an existing directory.

        Parameters
        ----------
        path : Path | str
            Target directory, absolute or relative to the current one

        Returns
        -------
        Path
            The new working directory

        Raises
        ------
        InvalidPathError
            If the target does not exist or is not a directory. The working
            directory is left unchanged.
        """
        # Every component must exist, including ones a later ".." cancels.
        given = self.working_directory / Path(path)
        if not given.exists():
            raise InvalidPathError(given)
        if not given.is_dir():
            raise InvalidPathError(given, "not a directory")

        target = self.resolve(path)

        self.working_directory = target
        logger.debug("Working directory is now %s", target)
        return target

    def set_timeout(self, seconds: float) -> None:
        """Set the timeout for subsequent commands.

        Raises
        ------
        ValueError
            If ``seconds`` is not a positive number
        """
        self.timeout_seconds = _validate_timeout(seconds)
        logger.debug("Command timeout set to %ss", self.timeout_seconds)

    def set_env(self, key: str, value: str) -> None:
        """Override an environment variable for spawned commands."""
        self.environment[key] = value

    def unset_env(self, key: str) -> None:
        """Hide an environment variable from spawned commands."""
        self.environment[key] = None

    def command_environment(self) -> dict[str, str]:
        """Build the environment passed to child processes.

        Returns
        -------
        dict[str, str]
            Host environment with this context's overrides applied
        """
        env = dict(os.environ)
        for key, value in self.environment.items():
            if value is None:
                env.pop(key, None)
            else:
                env[key] = value
        return env

    @property
    def last_result(self) -> "CommandResult | None":
        """Most recent command result, or None if nothing has run."""
        if not self.results:
            return None
        return self.results[-1]


def _validate_timeout(seconds: float) -> float:
    try:
        value = float(seconds)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Timeout must be a number, got {seconds!r}") from e

    if not value > 0:
        raise ValueError(f"Timeout must be positive, got {seconds!r}")

    return value
