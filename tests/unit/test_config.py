"""Unit tests for harness configuration loading."""

import pytest

from cliharness.config import HarnessConfig, load_config
from cliharness.constants import DEFAULT_TIMEOUT_SECONDS


class TestLoadConfigDefaults:
    """Test built-in defaults."""

    def test_defaults_match_original_layout(self) -> None:
        config = load_config(environ={})

        assert config == HarnessConfig()
        assert config.scratch_base == "/tmp"
        assert config.scratch_name == "TestRepo"
        assert config.timeout_seconds == DEFAULT_TIMEOUT_SECONDS
        assert config.shell == "/bin/sh"
        assert config.clean_workspace_tag == "clean_workspace"

    def test_reads_os_environ_by_default(self, monkeypatch) -> None:
        monkeypatch.setenv("CLIHARNESS_SCRATCH_NAME", "FromEnv")

        config = load_config()

        assert config.scratch_name == "FromEnv"


class TestLoadConfigOverrides:
    """Test environment and userdata precedence."""

    def test_environment_overrides(self) -> None:
        config = load_config(
            environ={
                "CLIHARNESS_SCRATCH_BASE": "/var/tmp",
                "CLIHARNESS_TIMEOUT": "30",
                "CLIHARNESS_LOG_LEVEL": "DEBUG",
            }
        )

        assert config.scratch_base == "/var/tmp"
        assert config.timeout_seconds == 30.0
        assert config.log_level == "DEBUG"

    def test_userdata_wins_over_environment(self) -> None:
        config = load_config(
            userdata={"scratch_name": "FromUserdata", "timeout_seconds": "2.5"},
            environ={"CLIHARNESS_SCRATCH_NAME": "FromEnv"},
        )

        assert config.scratch_name == "FromUserdata"
        assert config.timeout_seconds == 2.5

    def test_unknown_userdata_keys_ignored(self) -> None:
        config = load_config(userdata={"browser": "firefox"}, environ={})

        assert config == HarnessConfig()

    def test_empty_environment_value_ignored(self) -> None:
        config = load_config(environ={"CLIHARNESS_SCRATCH_NAME": ""})

        assert config.scratch_name == "TestRepo"


class TestLoadConfigValidation:
    """Test invalid values are rejected."""

    def test_non_numeric_timeout(self) -> None:
        with pytest.raises(ValueError, match="Invalid harness configuration"):
            load_config(environ={"CLIHARNESS_TIMEOUT": "soon"})

    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_non_positive_timeout(self, value: str) -> None:
        with pytest.raises(ValueError, match="timeout_seconds must be positive"):
            load_config(userdata={"timeout_seconds": value}, environ={})

    def test_scratch_name_with_separator(self) -> None:
        with pytest.raises(ValueError, match="scratch_name"):
            load_config(userdata={"scratch_name": "a/b"}, environ={})
