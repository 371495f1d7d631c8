"""Step handlers binding scenario phrases to harness operations.

Handlers expect the host context to carry a ``CommandHarness`` in its
``harness`` attribute, which ``cliharness.environment.before_scenario`` sets
up. Call ``register_steps`` once from a step module to make the phrases
available:

    from cliharness.registry import BehaveStepRegistry
    from cliharness.steps import register_steps

    register_steps(BehaveStepRegistry())
"""

import logging
from typing import Any

from cliharness.harness import CommandHarness
from cliharness.registry import StepRegistry

logger = logging.getLogger(__name__)

ENTER_DIRECTORY = r"I'm in \"(?P<path>[^\"]*)\""
PREPARE_WORKSPACE = r"I am running (?P<tool>\S+)(?: .*?)? commands"
RUN_COMMAND = r"I run `(?P<command>[^`]*)`"
SET_TIMEOUT = r"the timeout is (?P<seconds>\d+(?:\.\d+)?) seconds?"
SET_ENV = r"the environment variable \"(?P<key>[^\"]+)\" is \"(?P<value>[^\"]*)\""
UNSET_ENV = r"the environment variable \"(?P<key>[^\"]+)\" is unset"


def _harness(context: Any) -> CommandHarness:
    harness = getattr(context, "harness", None)
    if harness is None:
        raise RuntimeError(
            "No harness on context; call cliharness.environment.before_scenario "
            "from features/environment.py"
        )
    return harness


def step_enter_directory(context: Any, path: str) -> None:
    _harness(context).enter_directory(path)


def step_prepare_clean_workspace(context: Any, tool: str | None = None) -> None:
    workspace = _harness(context).prepare_clean_workspace()
    logger.debug("Scratch workspace ready for %s commands: %s", tool, workspace)


def step_run_command(context: Any, command: str) -> None:
    _harness(context).run(command)


def step_set_timeout(context: Any, seconds: str) -> None:
    _harness(context).set_timeout(float(seconds))


def step_set_env(context: Any, key: str, value: str) -> None:
    _harness(context).set_env(key, value)


def step_unset_env(context: Any, key: str) -> None:
    _harness(context).unset_env(key)


HARNESS_STEPS = [
    ("step", ENTER_DIRECTORY, step_enter_directory),
    ("step", PREPARE_WORKSPACE, step_prepare_clean_workspace),
    ("step", RUN_COMMAND, step_run_command),
    ("step", SET_TIMEOUT, step_set_timeout),
    ("step", UNSET_ENV, step_unset_env),
    ("step", SET_ENV, step_set_env),
]


def register_steps(registry: StepRegistry) -> None:
    """Bind every harness phrase in ``registry``."""
    for step_type, pattern, handler in HARNESS_STEPS:
        registry.add(step_type, pattern, handler)
