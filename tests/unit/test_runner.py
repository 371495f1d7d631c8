"""Unit tests for CommandRunner."""

import sys
from pathlib import Path

import pytest

from cliharness.constants import TIMEOUT_EXIT_STATUS
from cliharness.exceptions import SpawnError
from cliharness.resources import ResourceRegistry
from cliharness.runner import CommandResult, CommandRunner, first_program

from process_helpers import process_is_alive, wait_until_dead

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="runner relies on POSIX process groups"
)


@pytest.fixture
def runner() -> CommandRunner:
    return CommandRunner()


class TestRunCompletion:
    """Test commands that finish on their own."""

    def test_captures_stdout_and_stderr(self, runner, execution) -> None:
        result = runner.run("echo out; echo err >&2", execution)

        assert result.stdout == b"out\n"
        assert result.stderr == b"err\n"
        assert result.exit_status == 0
        assert result.timed_out is False
        assert result.succeeded

    def test_non_zero_exit_is_returned(self, runner, execution) -> None:
        """Test a failing command is data, not an exception."""
        result = runner.run("exit 3", execution)

        assert result.exit_status == 3
        assert not result.succeeded
        assert not result.timed_out

    def test_explicit_exit_127_is_not_a_spawn_error(self, runner, execution) -> None:
        result = runner.run("exit 127", execution)

        assert result.exit_status == 127

    def test_runs_in_context_working_directory(self, runner, execution, tmp_path: Path) -> None:
        (tmp_path / "sub").mkdir()
        execution.set_working_directory("sub")

        result = runner.run("pwd", execution)

        assert Path(result.stdout_text.strip()).resolve() == (tmp_path / "sub").resolve()
        assert result.working_directory == tmp_path / "sub"

    def test_creates_files_relative_to_context(self, runner, execution, tmp_path: Path) -> None:
        runner.run("touch made.txt", execution)

        assert (tmp_path / "made.txt").exists()

    def test_environment_overrides(self, runner, execution, monkeypatch) -> None:
        monkeypatch.setenv("CLIHARNESS_TEST_HIDDEN", "secret")
        execution.set_env("CLIHARNESS_TEST_VALUE", "hello")
        execution.unset_env("CLIHARNESS_TEST_HIDDEN")

        result = runner.run(
            'echo "$CLIHARNESS_TEST_VALUE:${CLIHARNESS_TEST_HIDDEN:-unset}"', execution
        )

        assert result.stdout_text == "hello:unset\n"

    def test_binary_output_preserved(self, runner, execution) -> None:
        result = runner.run(r"printf '\377\001'", execution)

        assert result.stdout == b"\xff\x01"
        assert result.stdout_text == "\ufffd\x01"

    def test_large_output_does_not_deadlock(self, runner, execution) -> None:
        result = runner.run("head -c 1000000 /dev/zero; head -c 1000000 /dev/zero >&2", execution)

        assert len(result.stdout) == 1000000
        assert len(result.stderr) == 1000000

    def test_input_is_fed_to_stdin(self, runner, execution) -> None:
        result = runner.run("cat", execution, input=b"piped\n")

        assert result.stdout == b"piped\n"

    def test_stdin_is_closed_without_input(self, runner, execution) -> None:
        result = runner.run("cat", execution)

        assert result.stdout == b""
        assert result.exit_status == 0

    def test_result_is_recorded_on_context(self, runner, execution) -> None:
        first = runner.run("true", execution)
        second = runner.run("false", execution)

        assert execution.results == [first, second]
        assert execution.last_result is second

    def test_output_text_concatenates_streams(self, runner, execution) -> None:
        result = runner.run("echo a; echo b >&2", execution)

        assert result.output_text == "a\nb\n"


class TestRunTimeout:
    """Test commands that exceed the timeout."""

    def test_timed_out_command_is_killed(self, runner, execution) -> None:
        execution.set_timeout(0.5)

        result = runner.run("echo started; sleep 30", execution)

        assert result.timed_out is True
        assert result.exit_status == TIMEOUT_EXIT_STATUS
        assert result.stdout == b"started\n"
        assert result.duration_seconds < 10
        assert not result.succeeded

    def test_descendants_are_killed(self, runner, execution, tmp_path: Path) -> None:
        """Test background children of a timed-out command do not survive."""
        execution.set_timeout(1)

        result = runner.run(
            "sleep 30 & echo $! > child.pid; sleep 30 & echo $! >> child.pid; wait",
            execution,
        )

        assert result.timed_out
        pids = [int(line) for line in (tmp_path / "child.pid").read_text().split()]
        assert len(pids) == 2
        for pid in pids:
            assert wait_until_dead(pid), f"descendant {pid} still running"

    def test_timeout_result_is_recorded(self, runner, execution) -> None:
        execution.set_timeout(0.2)

        result = runner.run("sleep 5", execution)

        assert execution.last_result is result


class TestSpawnErrors:
    """Test commands that cannot be launched."""

    def test_missing_executable(self, runner, execution) -> None:
        with pytest.raises(SpawnError) as exc_info:
            runner.run("definitely-not-a-real-command-xyz", execution)

        assert exc_info.value.command == "definitely-not-a-real-command-xyz"
        assert execution.results == []

    def test_non_executable_file(self, runner, execution, tmp_path: Path) -> None:
        script = tmp_path / "script.sh"
        script.write_text("echo hi\n")
        script.chmod(0o644)

        with pytest.raises(SpawnError):
            runner.run("./script.sh", execution)

    def test_missing_executable_after_assignments(self, runner, execution) -> None:
        with pytest.raises(SpawnError):
            runner.run("GREETING=hi definitely-not-a-real-command-xyz", execution)

    def test_missing_program_inside_nested_shell_is_data(self, runner, execution) -> None:
        result = runner.run("sh -c 'nonexistent_xyz_tool'", execution)

        assert result.exit_status == 127
        assert "nonexistent_xyz_tool" in result.stderr_text
        assert execution.results == [result]

    def test_script_with_missing_child_is_data(self, runner, execution, tmp_path: Path) -> None:
        script = tmp_path / "wrapper.sh"
        script.write_text("#!/bin/sh\nnonexistent_xyz_tool\n")
        script.chmod(0o755)

        result = runner.run("./wrapper.sh", execution)

        assert result.exit_status == 127
        assert execution.last_result is result

    def test_missing_shell(self, execution) -> None:
        runner = CommandRunner(shell="/nonexistent/shell")

        with pytest.raises(SpawnError):
            runner.run("echo hi", execution)

        assert execution.results == []

    def test_missing_working_directory(self, runner, execution, tmp_path: Path) -> None:
        (tmp_path / "gone").mkdir()
        execution.set_working_directory("gone")
        (tmp_path / "gone").rmdir()

        with pytest.raises(SpawnError):
            runner.run("true", execution)


class TestRunArgv:
    """Test running argument vectors without a shell."""

    def test_runs_argv(self, runner, execution) -> None:
        result = runner.run_argv(["echo", "a b"], execution)

        assert result.stdout == b"a b\n"
        assert result.command == 'echo "a b"'

    def test_missing_executable(self, runner, execution) -> None:
        with pytest.raises(SpawnError):
            runner.run_argv(["definitely-not-a-real-command-xyz"], execution)

    def test_empty_argv(self, runner, execution) -> None:
        with pytest.raises(SpawnError):
            runner.run_argv([], execution)

    def test_exit_127_from_argv_is_data(self, runner, execution) -> None:
        result = runner.run_argv(["sh", "-c", "echo not found >&2; exit 127"], execution)

        assert result.exit_status == 127


class TestResourceRegistration:
    """Test process groups handed to the resource registry."""

    def test_background_jobs_killed_at_cleanup(self, execution) -> None:
        resources = ResourceRegistry()
        runner = CommandRunner(resources=resources)

        result = runner.run("sleep 30 >/dev/null 2>&1 & echo $!", execution)
        pid = int(result.stdout_text.strip())

        assert result.exit_status == 0
        assert process_is_alive(pid)
        assert len(resources.resources) == 1

        resources.cleanup_all()

        assert wait_until_dead(pid)
        assert resources.resources == []

    def test_finished_groups_are_released(self, execution) -> None:
        resources = ResourceRegistry()
        runner = CommandRunner(resources=resources)

        for _ in range(5):
            runner.run("true", execution)

        assert resources.resources == []

    def test_background_job_holding_output_does_not_time_out(self, execution) -> None:
        resources = ResourceRegistry()
        runner = CommandRunner(resources=resources)

        result = runner.run("sleep 30 & echo $!", execution)
        pid = int(result.stdout_text.strip())

        assert result.timed_out is False
        assert result.exit_status == 0
        assert process_is_alive(pid)
        assert result.duration_seconds < execution.timeout_seconds
        assert len(resources.resources) == 1

        resources.cleanup_all()

        assert wait_until_dead(pid)


class TestCommandResult:
    """Test result convenience properties."""

    def test_timed_out_never_succeeds(self, tmp_path: Path) -> None:
        result = CommandResult(
            command="x",
            exit_status=0,
            stdout=b"",
            stderr=b"",
            timed_out=True,
            duration_seconds=1.0,
            working_directory=tmp_path,
        )

        assert not result.succeeded


class TestFirstProgram:
    """Test finding the program a command line starts with."""

    @pytest.mark.parametrize(
        "command_line, expected",
        [
            ("git status", "git"),
            ("./run.sh --fast", "./run.sh"),
            ("LANG=C LC_ALL=C sort -u", "sort"),
            ("'my tool' arg", "my tool"),
            ("missing && echo done", "missing"),
            ("", None),
            ("A=1", None),
            ("echo 'unterminated", None),
        ],
    )
    def test_first_program(self, command_line, expected) -> None:
        assert first_program(command_line) == expected
