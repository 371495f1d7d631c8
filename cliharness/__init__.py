"""Acceptance-test harness for command-line tools driven by Behave scenarios."""

from cliharness.config import HarnessConfig, load_config
from cliharness.context import ExecutionContext
from cliharness.exceptions import (
    FilesystemError,
    HarnessError,
    InvalidPathError,
    SpawnError,
)
from cliharness.harness import CommandHarness, ScenarioHarness
from cliharness.resources import ResourceRegistry
from cliharness.runner import CommandResult, CommandRunner
from cliharness.workspace import ScratchWorkspace

__all__ = [
    "CommandHarness",
    "CommandResult",
    "CommandRunner",
    "ExecutionContext",
    "FilesystemError",
    "HarnessConfig",
    "HarnessError",
    "InvalidPathError",
    "ResourceRegistry",
    "ScenarioHarness",
    "ScratchWorkspace",
    "SpawnError",
    "load_config",
]
