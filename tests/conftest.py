"""Pytest configuration and fixtures for cliharness tests."""

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from cliharness.context import ExecutionContext  # noqa: E402


@pytest.fixture
def execution(tmp_path: Path) -> ExecutionContext:
    """Execution context rooted in a per-test temporary directory."""
    context = ExecutionContext(base_directory=tmp_path)
    context.reset()
    return context


@pytest.fixture
def make_scenario():
    """Build a stand-in for a Behave scenario.

    Returns
    -------
    Callable
        Factory taking name, tags and status
    """

    def factory(
        name: str = "test scenario",
        tags: list[str] | None = None,
        status: str = "passed",
    ) -> SimpleNamespace:
        return SimpleNamespace(name=name, tags=tags or [], status=status)

    return factory
