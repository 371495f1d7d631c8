"""Synchronous command execution with an enforced timeout."""

import logging
import os
import re
import shlex
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from cliharness.constants import (
    DEFAULT_SHELL,
    EXIT_DRAIN_SECONDS,
    KILL_DRAIN_SECONDS,
    TIMEOUT_EXIT_STATUS,
)
from cliharness.context import ExecutionContext
from cliharness.exceptions import SpawnError
from cliharness.resources import ResourceRegistry

logger = logging.getLogger(__name__)

SHELL_NOT_FOUND_STATUS = 127
SHELL_NOT_EXECUTABLE_STATUS = 126

LAUNCH_FAILURE_REASONS = (
    r"(?:command )?not found|No such file or directory|Permission denied"
    r"|Is a directory|cannot execute.*"
)

ASSIGNMENT_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*=")

READ_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of running one command once.

    Attributes
    ----------
    command : str
        Command line as given to the runner
    exit_status : int
        Exit status; ``TIMEOUT_EXIT_STATUS`` when the command was killed on
        timeout, negative signal numbers for other signal deaths
    stdout : bytes
        Everything written to standard output
    stderr : bytes
        Everything written to standard error
    timed_out : bool
        True if the command was killed because it exceeded the timeout
    duration_seconds : float
        Wall-clock time from spawn to completion or kill
    working_directory : Path
        Directory the command ran in
    """

    command: str
    exit_status: int
    stdout: bytes
    stderr: bytes
    timed_out: bool
    duration_seconds: float
    working_directory: Path

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    @property
    def output_text(self) -> str:
        """Standard output followed by standard error."""
        return self.stdout_text + self.stderr_text

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0 and not self.timed_out


def kill_process_group(process: subprocess.Popen) -> None:
    """SIGKILL the process group led by a child started in its own session.

    Works after the leader has exited, so background jobs it left behind in
    the group are killed too.
    """
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError as e:
        logger.debug("Could not signal process group %s: %s", process.pid, e)




def process_group_alive(pgid: int) -> bool:
    """Whether any process is left in the group ``pgid``."""
    try:
        os.killpg(pgid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class _PipeReader:
    """Reads one output pipe to EOF on a daemon thread.

    The thread owns the pipe and closes it at EOF. A background job holding
    the write end can keep it open past the command's exit, so callers join
    with a bound and take a snapshot of what has arrived.
    """

    def __init__(self, pipe) -> None:
        self._pipe = pipe
        self._chunks: list[bytes] = []
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._read, daemon=True)
        self._thread.start()

    def _read(self) -> None:
        fd = self._pipe.fileno()
        try:
            while True:
                chunk = os.read(fd, READ_CHUNK_SIZE)
                if not chunk:
                    break
                with self._lock:
                    self._chunks.append(chunk)
        except OSError as e:
            logger.debug("Stopped reading command output: %s", e)
        finally:
            self._pipe.close()

    def join(self, deadline: float) -> bool:
        self._thread.join(max(0.0, deadline - time.monotonic()))
        return not self._thread.is_alive()

    def snapshot(self) -> bytes:
        with self._lock:
            return b"".join(self._chunks)


def _feed_stdin(pipe, data: bytes) -> None:
    try:
        pipe.write(data)
        pipe.close()
    except BrokenPipeError:
        # The command exited without reading all of its input.
        pass


class CommandRunner:
    """Runs commands to completion or timeout inside an ExecutionContext.

    Every child is started in its own session so that the whole process
    tree can be killed on timeout. When a resource registry is given, each
    process group is registered while it runs and released once the group is
    empty. Groups that still hold background jobs after the command returns
    stay registered and are killed when the scenario ends.

    Parameters
    ----------
    shell : str
        Shell that interprets command lines passed to ``run``
    resources : ResourceRegistry | None
        Registry that owns spawned process groups until scenario end
    """

    def __init__(
        self,
        shell: str = DEFAULT_SHELL,
        resources: ResourceRegistry | None = None,
    ) -> None:
        self.shell = shell
        self.resources = resources

    def run(
        self,
        command_line: str,
        context: ExecutionContext,
        input: bytes | None = None,
    ) -> CommandResult:
        """Run a shell command line.

        A non-zero exit status or a timeout is reported in the result, not
        raised. That includes exit 127 from a program that ran and then
        failed to start one of its own children.

        Parameters
        ----------
        command_line : str
            Command line interpreted by the configured shell
        context : ExecutionContext
            Supplies working directory, timeout and environment; the result
            is appended to ``context.results``
        input : bytes | None
            Data written to the command's stdin; stdin is ``/dev/null``
            when omitted

        Returns
        -------
        CommandResult
            Captured outcome

        Raises
        ------
        SpawnError
            If the shell cannot be started, or it reports that the first
            program of the command line was not found or cannot be executed
        """
        argv = [self.shell, "-c", command_line]
        result = self._execute(command_line, argv, context, input)

        if is_launch_failure(result):
            raise SpawnError(command_line, result.stderr_text.strip())

        return self._record(result, context)

    def run_argv(
        self,
        argv: list[str],
        context: ExecutionContext,
        input: bytes | None = None,
    ) -> CommandResult:
        """Run an argument vector directly, without a shell.

        Raises
        ------
        SpawnError
            If the executable does not exist or cannot be executed
        """
        if not argv:
            raise SpawnError("", "empty argument vector")

        command = subprocess.list2cmdline(argv)
        result = self._execute(command, argv, context, input)
        return self._record(result, context)

    def _execute(
        self,
        command: str,
        argv: list[str],
        context: ExecutionContext,
        input: bytes | None,
    ) -> CommandResult:
        logger.debug(
            "Running '%s' in %s (timeout %ss)",
            command,
            context.working_directory,
            context.timeout_seconds,
        )

        start = time.monotonic()
        try:
            process = subprocess.Popen(
                argv,
                cwd=context.working_directory,
                env=context.command_environment(),
                stdin=subprocess.PIPE if input is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise SpawnError(command, str(e)) from e

        entry = None
        if self.resources is not None:
            entry = self.resources.register(
                "process-group", process, kill_process_group, label=command
            )

        readers = (_PipeReader(process.stdout), _PipeReader(process.stderr))
        if input is not None:
            threading.Thread(
                target=_feed_stdin, args=(process.stdin, input), daemon=True
            ).start()

        timed_out = False
        try:
            try:
                process.wait(timeout=context.timeout_seconds)
                drain_seconds = EXIT_DRAIN_SECONDS
            except subprocess.TimeoutExpired:
                timed_out = True
                logger.warning(
                    "Command '%s' timed out after %ss, killing process group",
                    command,
                    context.timeout_seconds,
                )
                kill_process_group(process)
                process.wait()
                drain_seconds = KILL_DRAIN_SECONDS
            duration = time.monotonic() - start

            deadline = time.monotonic() + drain_seconds
            if not all([reader.join(deadline) for reader in readers]):
                logger.debug(
                    "Output of '%s' still open after %ss, keeping what was read",
                    command,
                    drain_seconds,
                )
        except BaseException:
            kill_process_group(process)
            process.wait()
            raise
        finally:
            if entry is not None and not process_group_alive(process.pid):
                self.resources.release(entry)

        exit_status = TIMEOUT_EXIT_STATUS if timed_out else process.returncode

        return CommandResult(
            command=command,
            exit_status=exit_status,
            stdout=readers[0].snapshot(),
            stderr=readers[1].snapshot(),
            timed_out=timed_out,
            duration_seconds=duration,
            working_directory=context.working_directory,
        )

    def _record(
        self, result: CommandResult, context: ExecutionContext
    ) -> CommandResult:
        context.results.append(result)

        logger.debug(
            "Command '%s' finished: exit=%s timed_out=%s duration=%.2fs",
            result.command,
            result.exit_status,
            result.timed_out,
            result.duration_seconds,
        )
        streams = (("stdout", result.stdout_text), ("stderr", result.stderr_text))
        for stream, text in streams:
            for line in text.splitlines():
                logger.debug("%s", line, extra={"stream": stream})

        return result


def first_program(command_line: str) -> str | None:
    """The program a shell command line starts with.

    Leading ``NAME=value`` assignments are skipped. Returns None when the
    line cannot be tokenised or holds no program word.
    """
    lexer = shlex.shlex(command_line, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    try:
        for token in lexer:
            if ASSIGNMENT_PATTERN.match(token):
                continue
            if set(token) <= set(lexer.punctuation_chars):
                return None
            return token
    except ValueError:
        return None
    return None


def is_launch_failure(result: CommandResult) -> bool:
    """Whether the shell itself failed to start the command's first program.

    Only a lone shell diagnostic naming that program counts. A nested shell
    or script reporting a missing child of its own is an ordinary result.
    """
    if result.timed_out or result.stdout:
        return False
    if result.exit_status not in (SHELL_NOT_FOUND_STATUS, SHELL_NOT_EXECUTABLE_STATUS):
        return False

    program = first_program(result.command)
    if program is None:
        return False

    diagnostic = re.compile(
        r"[^:\n]*: (?:line \d+: |\d+: )?%s: (?:%s)"
        % (re.escape(program), LAUNCH_FAILURE_REASONS)
    )
    return diagnostic.fullmatch(result.stderr_text.strip()) is not None
