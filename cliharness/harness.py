"""Scenario-scoped harness tying the execution services together."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from behave.model import Scenario
from behave.runner import Context

from cliharness.config import HarnessConfig
from cliharness.constants import OUTPUT_TAIL_LINES, TIMEOUT_TAG_PREFIX
from cliharness.context import ExecutionContext
from cliharness.resources import ResourceRegistry
from cliharness.runner import CommandResult, CommandRunner
from cliharness.workspace import ScratchWorkspace

logger = logging.getLogger(__name__)


class ScenarioHarness(ABC):
    """Owns everything one scenario creates, from its first step to its last.

    A fresh harness is built in ``before_scenario`` and torn down in
    ``after_scenario``. Only the scratch directory outlives it.

    Parameters
    ----------
    context : Context
        Behave context the harness is attached to
    scenario : Scenario
        Scenario being run; its tags select per-scenario behaviour
    """

    def __init__(self, context: Context, scenario: Scenario) -> None:
        self.context = context
        self.scenario = scenario
        self.services = None

    @abstractmethod
    def setup(self) -> None:
        """Build the services and apply the scenario's tags."""

    @abstractmethod
    def cleanup(self) -> None:
        """Release whatever the scenario left running."""


@dataclass
class ServiceContainer:
    """Container holding all harness services.

    Attributes
    ----------
    execution : ExecutionContext
        Working directory, timeout and environment for the scenario
    resources : ResourceRegistry
        Process groups to kill when the scenario ends
    workspace : ScratchWorkspace
        Scratch directory manager
    runner : CommandRunner
        Command execution
    """

    execution: ExecutionContext
    resources: ResourceRegistry
    workspace: ScratchWorkspace
    runner: CommandRunner


class CommandHarness(ScenarioHarness):
    """Harness for scenarios that drive command-line tools.

    Exposes the operations step definitions bind to: entering a directory,
    preparing the clean scratch workspace and running commands.

    Parameters
    ----------
    context : Context
        Behave context object for the current scenario
    scenario : Scenario
        Behave scenario object containing metadata and tags
    config : HarnessConfig | None
        Run-wide settings; defaults are used when omitted
    base_directory : Path | str | None
        Directory the execution context starts in; defaults to the process
        working directory
    """

    def __init__(
        self,
        context: Context,
        scenario: Scenario,
        config: HarnessConfig | None = None,
        base_directory: Path | str | None = None,
    ) -> None:
        super().__init__(context, scenario)
        self.config = config or HarnessConfig()
        self.base_directory = base_directory

    def setup(self) -> None:
        """Reset the execution context and apply scenario tags.

        ``@timeout_N`` sets the command timeout to N seconds. The configured
        clean-workspace tag resets the scratch workspace and enters it.
        """
        execution = ExecutionContext(
            base_directory=self.base_directory,
            default_timeout=self.config.timeout_seconds,
        )
        resources = ResourceRegistry()
        self.services = ServiceContainer(
            execution=execution,
            resources=resources,
            workspace=ScratchWorkspace(
                execution,
                base_dir=self.config.scratch_base,
                name=self.config.scratch_name,
            ),
            runner=CommandRunner(shell=self.config.shell, resources=resources),
        )
        execution.reset()

        tags = _scenario_tags(self.scenario)
        timeout = _timeout_from_tags(tags)
        if timeout is not None:
            logger.info("Using custom timeout from tag: %ss", timeout)
            execution.set_timeout(timeout)

        if self.config.clean_workspace_tag in tags:
            self.prepare_clean_workspace()

    def cleanup(self) -> None:
        """Kill leftover process groups and log diagnostics for failures.

        The scratch workspace is left on disk for inspection; the next
        scenario that needs it resets it.
        """
        if self.services is None:
            return

        if getattr(self.scenario, "status", None) == "failed":
            self._log_failure_diagnostics()

        self.services.resources.cleanup_all()
        self.services = None

    @property
    def execution(self) -> ExecutionContext:
        return self._require_services().execution

    def enter_directory(self, path: Path | str) -> Path:
        """Change the scenario working directory."""
        return self._require_services().workspace.change_directory(path)

    def prepare_clean_workspace(self) -> Path:
        """Recreate the configured scratch workspace and enter it."""
        return self._require_services().workspace.prepare_default()

    def run(self, command_line: str, input: bytes | None = None) -> CommandResult:
        """Run a command line in the scenario's execution context."""
        services = self._require_services()
        return services.runner.run(command_line, services.execution, input=input)

    def set_timeout(self, seconds: float) -> None:
        self._require_services().execution.set_timeout(seconds)

    def set_env(self, key: str, value: str) -> None:
        self._require_services().execution.set_env(key, value)

    def unset_env(self, key: str) -> None:
        self._require_services().execution.unset_env(key)

    @property
    def last_result(self) -> CommandResult | None:
        return self._require_services().execution.last_result

    def _require_services(self) -> ServiceContainer:
        if self.services is None:
            raise RuntimeError("Harness is not set up. Call setup() first.")
        return self.services

    def _log_failure_diagnostics(self) -> None:
        execution = self.services.execution
        result = execution.last_result
        scenario_name = getattr(self.scenario, "name", "unknown-scenario")

        if result is None:
            logger.info(
                "Scenario '%s' failed before any command ran (cwd=%s)",
                scenario_name,
                execution.working_directory,
            )
            return

        logger.info(
            "Scenario '%s' failed; last command '%s' exited %s "
            "(timed_out=%s, cwd=%s)\n%s",
            scenario_name,
            result.command,
            result.exit_status,
            result.timed_out,
            result.working_directory,
            _tail(result.output_text, OUTPUT_TAIL_LINES),
        )


def _scenario_tags(scenario: Any) -> list[str]:
    tags = getattr(scenario, "effective_tags", None)
    if tags is None:
        tags = getattr(scenario, "tags", None) or []
    return [str(tag) for tag in tags]


def _timeout_from_tags(tags: list[str]) -> float | None:
    timeout = None
    for tag in tags:
        if not tag.startswith(TIMEOUT_TAG_PREFIX):
            continue
        try:
            timeout = float(tag[len(TIMEOUT_TAG_PREFIX):])
        except ValueError:
            logger.warning("Invalid timeout tag format: %s, using default", tag)
            continue
        if not timeout > 0:
            logger.warning("Invalid timeout tag format: %s, using default", tag)
            timeout = None
    return timeout


def _tail(text: str, lines: int) -> str:
    return "\n".join(text.splitlines()[-lines:])
