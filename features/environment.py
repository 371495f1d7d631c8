"""Behave environment configuration for cliharness acceptance tests."""

import logging

from behave.model import Scenario
from behave.runner import Context

from cliharness import environment as harness_environment

logger = logging.getLogger(__name__)


def before_all(context: Context) -> None:
    """Setup executed before all tests."""
    harness_environment.before_all(context)


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Setup executed before each scenario."""
    harness_environment.before_scenario(context, scenario)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Cleanup executed after each scenario."""
    harness_environment.after_scenario(context, scenario)
