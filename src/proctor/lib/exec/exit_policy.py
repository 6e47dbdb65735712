"""Map a child's OS exit status to success or failure."""

from __future__ import annotations

from typing import TYPE_CHECKING

from proctor.lib.exec.errors import ExitStatusError, LaunchError, log_and_raise
from proctor.lib.exec.types import ExecutionResult

if TYPE_CHECKING:
    from proctor.lib.exec.types import Invocation
    from proctor.lib.sinks import LogSink

SIGNAL_EXIT_BASE = 128

# Statuses the shell reports when it could not start the requested program.
_SHELL_LAUNCH_FAILURES: dict[int, str] = {
    126: "command not executable",
    127: "command not found",
}


def exit_status_from_returncode(returncode: int) -> int:
    """Convert a ``Popen.returncode`` to a shell-style exit status.

    Children killed by a signal report ``-signum``; shells report those as
    ``128 + signum``.
    """

    if returncode < 0:
        return SIGNAL_EXIT_BASE - returncode
    return returncode


def check_exit_status(
    invocation: Invocation,
    exit_code: int,
    output: bytes,
    *,
    logger: LogSink,
) -> ExecutionResult:
    if invocation.ignore_exit_status or exit_code == invocation.exit_code:
        return ExecutionResult(output=output, exit_code=exit_code)
    reason = _SHELL_LAUNCH_FAILURES.get(exit_code)
    if reason is not None:
        log_and_raise(logger, LaunchError(invocation.command, reason))
    log_and_raise(logger, ExitStatusError(invocation, exit_code, output))
