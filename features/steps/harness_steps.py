"""Step definitions exercising the harness end to end.

The harness phrases come from ``cliharness.steps``; the assertion steps below
belong to this suite only.
"""

import os
from pathlib import Path

from behave import given, then
from behave.runner import Context

from cliharness.exceptions import HarnessError
from cliharness.registry import BehaveStepRegistry
from cliharness.steps import register_steps

register_steps(BehaveStepRegistry())


def _last_result(context: Context):
    result = context.harness.last_result
    assert result is not None, "No command has been run in this scenario"
    return result


@given('the scratch workspace already contains a file named "{name}"')
def step_seed_scratch_file(context: Context, name: str) -> None:
    """Leave a file behind as if a previous scenario had created it."""
    workspace = context.harness.services.workspace.path
    workspace.mkdir(parents=True, exist_ok=True)
    (workspace / name).write_text("left over\n")


@given('I try to enter "{path}"')
def step_try_enter_directory(context: Context, path: str) -> None:
    context.previous_directory = context.harness.execution.working_directory
    try:
        context.harness.enter_directory(path)
        context.harness_error = None
    except HarnessError as e:
        context.harness_error = e


@given("I try to run `{command}`")
def step_try_run(context: Context, command: str) -> None:
    context.results_before = len(context.harness.execution.results)
    try:
        context.harness.run(command)
        context.harness_error = None
    except HarnessError as e:
        context.harness_error = e


@then('the harness should fail with "{error_name}"')
def step_harness_failed_with(context: Context, error_name: str) -> None:
    error = context.harness_error
    assert error is not None, "Expected a harness error, none was raised"
    assert type(error).__name__ == error_name, (
        f"Expected {error_name}, got {type(error).__name__}: {error}"
    )


@then("no command result should have been recorded")
def step_no_result_recorded(context: Context) -> None:
    assert len(context.harness.execution.results) == context.results_before


@then("the working directory should be unchanged")
def step_working_directory_unchanged(context: Context) -> None:
    assert context.harness.execution.working_directory == context.previous_directory


@then("the working directory should be the scratch workspace")
def step_in_scratch_workspace(context: Context) -> None:
    expected = Path(os.path.normpath(context.harness.services.workspace.path))
    assert context.harness.execution.working_directory == expected


@then("the scratch workspace should be empty")
def step_scratch_workspace_empty(context: Context) -> None:
    workspace = context.harness.services.workspace.path
    assert workspace.is_dir(), f"{workspace} is not a directory"
    leftovers = sorted(p.name for p in workspace.iterdir())
    assert leftovers == [], f"Scratch workspace not empty: {leftovers}"


@then('the working directory should be "{path}"')
def step_working_directory_is(context: Context, path: str) -> None:
    actual = context.harness.execution.working_directory
    assert actual == Path(path), f"Expected {path}, got {actual}"


@then('the output should contain "{text}"')
def step_output_contains(context: Context, text: str) -> None:
    output = _last_result(context).output_text
    assert text in output, f"'{text}' not found in output:\n{output}"


@then('the stderr should contain "{text}"')
def step_stderr_contains(context: Context, text: str) -> None:
    stderr = _last_result(context).stderr_text
    assert text in stderr, f"'{text}' not found in stderr:\n{stderr}"


@then("the exit status should be {status:d}")
def step_exit_status(context: Context, status: int) -> None:
    result = _last_result(context)
    assert result.exit_status == status, (
        f"Expected exit status {status}, got {result.exit_status}\n"
        f"{result.output_text}"
    )


@then("the command should have timed out")
def step_timed_out(context: Context) -> None:
    assert _last_result(context).timed_out, "Command finished before the timeout"


@then("the command should not have timed out")
def step_not_timed_out(context: Context) -> None:
    assert not _last_result(context).timed_out, "Command timed out"
