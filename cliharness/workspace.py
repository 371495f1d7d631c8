"""Scratch workspace management."""

import logging
import shutil
from pathlib import Path

from cliharness.constants import DEFAULT_SCRATCH_BASE, DEFAULT_SCRATCH_NAME
from cliharness.context import ExecutionContext
from cliharness.exceptions import FilesystemError

logger = logging.getLogger(__name__)


class ScratchWorkspace:
    """Creates, clears and enters the disposable scratch directory.

    Parameters
    ----------
    context : ExecutionContext
        Context whose working directory is updated
    base_dir : Path | str
        Directory the scratch workspace lives in
    name : str
        Name of the scratch directory under ``base_dir``
    """

    def __init__(
        self,
        context: ExecutionContext,
        base_dir: Path | str = DEFAULT_SCRATCH_BASE,
        name: str = DEFAULT_SCRATCH_NAME,
    ) -> None:
        self.context = context
        self.base_dir = Path(base_dir)
        self.name = name

    @property
    def path(self) -> Path:
        """Configured scratch directory path."""
        return self.base_dir / self.name

    def prepare_default(self) -> Path:
        """Reset the configured scratch directory and enter it."""
        return self.prepare_clean(self.base_dir, self.name)

    def prepare_clean(self, base_dir: Path | str, name: str) -> Path:
        """Recreate ``base_dir/name`` as an empty directory and enter it.

        Any existing entry named ``name`` is removed unconditionally, whatever
        a previous scenario left behind.

        Parameters
        ----------
        base_dir : Path | str
            Existing directory to create the workspace in
        name : str
            Single path component naming the workspace

        Returns
        -------
        Path
            The fresh, empty workspace, now the context working directory

        Raises
        ------
        InvalidPathError
            If ``base_dir`` does not exist or is not a directory
        FilesystemError
            If the old workspace cannot be removed or the new one created
        """
        _check_name(name)

        base = self.context.set_working_directory(base_dir)
        target = base / name

        _remove_entry(target)

        try:
            target.mkdir()
        except OSError as e:
            raise FilesystemError(
                f"Failed to create scratch workspace {target}: {e}"
            ) from e

        self.context.set_working_directory(target)
        logger.debug("Prepared clean scratch workspace %s", target)
        return target

    def change_directory(self, path: Path | str) -> Path:
        """Enter ``path``, resolved against the current working directory.

        Raises
        ------
        InvalidPathError
            If the target is missing or not a directory; the working
            directory is left unchanged
        """
        return self.context.set_working_directory(path)


def _check_name(name: str) -> None:
    parts = Path(name).parts
    if len(parts) != 1 or name in (".", "..") or Path(name).is_absolute():
        raise FilesystemError(
            f"Scratch workspace name must be a single path component, got {name!r}"
        )


def _remove_entry(target: Path) -> None:
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
        logger.debug("Removed previous scratch workspace %s", target)
    except FileNotFoundError:
        logger.debug("No previous scratch workspace at %s", target)
    except OSError as e:
        raise FilesystemError(
            f"Failed to remove scratch workspace {target}: {e}"
        ) from e
