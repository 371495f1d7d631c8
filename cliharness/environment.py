"""Behave hooks that manage one CommandHarness per scenario.

Import them into a suite's ``features/environment.py``:

    from cliharness.environment import after_scenario, before_all, before_scenario
"""

import logging

from behave.model import Scenario
from behave.runner import Context

from cliharness.config import load_config
from cliharness.harness import CommandHarness
from cliharness.logging import configure_logging

logger = logging.getLogger(__name__)


def before_all(context: Context) -> None:
    """Load harness configuration from userdata and environment."""
    userdata = getattr(context.config, "userdata", None)
    context.harness_config = load_config(userdata)
    configure_logging(context.harness_config.log_level)
    logger.info("Harness configuration: %s", context.harness_config)


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Set up a fresh harness for the scenario."""
    config = getattr(context, "harness_config", None)
    if config is None:
        config = load_config(getattr(context.config, "userdata", None))
        context.harness_config = config

    context.harness = CommandHarness(context, scenario, config=config)
    context.harness.setup()
    logger.debug("Initialized CommandHarness for scenario: %s", scenario.name)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Tear down the scenario's harness."""
    harness = getattr(context, "harness", None)
    if harness is None:
        return

    harness.cleanup()
    context.harness = None
    logger.debug("Cleaned up harness for scenario: %s", scenario.name)
