"""Harness configuration assembled from defaults, environment and userdata."""

import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from cliharness.constants import (
    DEFAULT_CLEAN_WORKSPACE_TAG,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SCRATCH_BASE,
    DEFAULT_SCRATCH_NAME,
    DEFAULT_SHELL,
    DEFAULT_TIMEOUT_SECONDS,
    ENV_PREFIX,
)

logger = logging.getLogger(__name__)

ENV_KEYS = {
    "scratch_base": f"{ENV_PREFIX}SCRATCH_BASE",
    "scratch_name": f"{ENV_PREFIX}SCRATCH_NAME",
    "timeout_seconds": f"{ENV_PREFIX}TIMEOUT",
    "shell": f"{ENV_PREFIX}SHELL",
    "clean_workspace_tag": f"{ENV_PREFIX}CLEAN_WORKSPACE_TAG",
    "log_level": f"{ENV_PREFIX}LOG_LEVEL",
}


@dataclass
class HarnessConfig:
    """Settings shared by every scenario of a test run.

    Attributes
    ----------
    scratch_base : str
        Directory the scratch workspace is created in
    scratch_name : str
        Name of the scratch workspace directory
    timeout_seconds : float
        Default command timeout applied when a scenario starts
    shell : str
        Shell used to interpret command lines
    clean_workspace_tag : str
        Scenario tag that triggers a workspace reset during setup
    log_level : str
        Level name for the harness log handler
    """

    scratch_base: str = DEFAULT_SCRATCH_BASE
    scratch_name: str = DEFAULT_SCRATCH_NAME
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    shell: str = DEFAULT_SHELL
    clean_workspace_tag: str = DEFAULT_CLEAN_WORKSPACE_TAG
    log_level: str = DEFAULT_LOG_LEVEL


def _known_keys() -> set[str]:
    return {field.name for field in dataclasses.fields(HarnessConfig)}


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides = {}
    for key, var_name in ENV_KEYS.items():
        value = environ.get(var_name)
        if value:
            overrides[key] = value
    return overrides


def _userdata_overrides(userdata: Mapping[str, Any] | None) -> dict[str, Any]:
    if not userdata:
        return {}

    known = _known_keys()
    return {key: value for key, value in userdata.items() if key in known}


def load_config(
    userdata: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> HarnessConfig:
    """Load harness configuration.

    Sources are merged lowest to highest: built-in defaults, ``CLIHARNESS_*``
    environment variables, then Behave userdata (``-D key=value``). Userdata
    keys that are not harness settings are ignored so suites can share the
    userdata namespace.

    Parameters
    ----------
    userdata : Mapping[str, Any] | None
        Behave ``context.config.userdata`` or any mapping of overrides
    environ : Mapping[str, str] | None
        Environment to read; defaults to ``os.environ``

    Returns
    -------
    HarnessConfig
        Validated configuration

    Raises
    ------
    ValueError
        If a value cannot be converted to its setting's type, or the
        timeout is not positive
    """
    if environ is None:
        environ = os.environ

    schema = OmegaConf.structured(HarnessConfig)

    try:
        cfg = OmegaConf.merge(
            schema,
            _env_overrides(environ),
            _userdata_overrides(userdata),
        )
        config = OmegaConf.to_object(cfg)
    except OmegaConfBaseException as e:
        logger.error("Invalid harness configuration: %s", e)
        raise ValueError(f"Invalid harness configuration: {e}") from e

    if not config.timeout_seconds > 0:
        raise ValueError(
            f"Invalid harness configuration: timeout_seconds must be positive, "
            f"got {config.timeout_seconds}"
        )

    if not config.scratch_name or os.sep in config.scratch_name:
        raise ValueError(
            "Invalid harness configuration: scratch_name must be a single "
            f"path component, got {config.scratch_name!r}"
        )

    logger.debug("Loaded harness configuration: %s", config)
    return config
