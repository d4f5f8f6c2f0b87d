"""External process execution with combined output capture."""

import logging
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from pki_issuer.lib.errors import ExecutionTimeoutError, NonZeroExitError, SpawnError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessInvocation:
    """A single external command call.

    environment replaces the caller's environment; nothing is inherited.
    """

    command: str
    arguments: tuple[str, ...]
    environment: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        command: str | Path,
        arguments: Sequence[str],
        environment: Mapping[str, str],
    ) -> "ProcessInvocation":
        """Build an invocation, copying arguments and environment."""
        return cls(
            command=str(command),
            arguments=tuple(arguments),
            environment=dict(environment),
        )

    def argv(self) -> list[str]:
        """Return the full argument vector including the command."""
        return [self.command, *self.arguments]


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and combined stdout/stderr of a finished process."""

    exit_code: int
    output: bytes

    @property
    def output_text(self) -> str:
        """Output decoded as UTF-8, undecodable bytes replaced."""
        return self.output.decode("utf-8", errors="replace")


class Executor(Protocol):
    """Callable that runs a ProcessInvocation."""

    def __call__(
        self, invocation: ProcessInvocation, timeout: float | None = None
    ) -> ProcessResult: ...


def execute(invocation: ProcessInvocation, timeout: float | None = None) -> ProcessResult:
    """Run an external command and wait for it to finish.

    stderr is redirected onto the stdout pipe so both streams land in one
    buffer in arrival order. The child never outlives this call: on timeout
    or any unexpected error it is killed and reaped before the error
    propagates.

    Args:
        invocation: Command, arguments and full environment
        timeout: Seconds to wait before killing the process (None waits forever)

    Returns:
        ProcessResult with exit code 0 and the captured output

    Raises:
        SpawnError: If the process cannot be started
        NonZeroExitError: If the process exits with a non-zero code
        ExecutionTimeoutError: If the process exceeds the timeout
    """
    logger.info("Executing %s %s", invocation.command, " ".join(invocation.arguments))

    try:
        process = subprocess.Popen(  # noqa: S603
            invocation.argv(),
            env=dict(invocation.environment),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except (OSError, ValueError) as e:
        logger.error("Failed to start %s: %s", invocation.command, e)
        raise SpawnError(f"cannot start {invocation.command}: {e}", cause=e) from e

    with process:
        try:
            output, _ = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            output, _ = process.communicate()
            _log_failure(invocation, output)
            raise ExecutionTimeoutError(
                invocation.command, timeout or 0.0, captured_output=output or b""
            ) from None
        except BaseException:
            process.kill()
            raise

    output = output or b""
    exit_code = process.returncode

    if exit_code != 0:
        _log_failure(invocation, output)
        raise NonZeroExitError(invocation.command, exit_code, captured_output=output)

    logger.info("Child process exited with code %d", exit_code)
    return ProcessResult(exit_code=exit_code, output=output)


def _log_failure(invocation: ProcessInvocation, output: bytes) -> None:
    logger.error(
        "Child process %s failed, output follows:\n%s",
        invocation.command,
        output.decode("utf-8", errors="replace"),
    )
