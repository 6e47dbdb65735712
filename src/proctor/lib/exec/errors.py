"""Failure taxonomy for local command execution."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, NoReturn

if TYPE_CHECKING:
    from proctor.lib.exec.types import Invocation
    from proctor.lib.sinks import LogSink


class FailureKind(StrEnum):
    LAUNCH = "launch"
    TIMEOUT = "timeout"
    EXIT_STATUS = "exit_status"
    USAGE = "usage"
    UNSUPPORTED = "unsupported"


class ProctorError(Exception):
    """Base class for every failure raised by the execution engine."""

    kind: FailureKind = FailureKind.USAGE


class LaunchError(ProctorError):
    """Raised when the child process could not be spawned."""

    kind = FailureKind.LAUNCH

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to launch {command!r}: {reason}")


class CommandTimeoutError(ProctorError, TimeoutError):
    """Raised when output streams stay open past the configured timeout."""

    kind = FailureKind.TIMEOUT

    def __init__(self, timeout_seconds: float, *, process: Any = None) -> None:
        self.timeout_seconds = timeout_seconds
        # Left running when termination on timeout is disabled.
        self.process = process
        super().__init__(f"Process timed out after {timeout_seconds:g} seconds!")


class ExitStatusError(ProctorError):
    """Raised when the observed exit code differs from the expected one."""

    kind = FailureKind.EXIT_STATUS

    def __init__(self, invocation: Invocation, exit_code: int, output: bytes = b"") -> None:
        self.command = invocation.command
        self.invocation = invocation
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"exec({invocation.command!r}, {invocation!r}) failed! [{exit_code}]")


class UsageError(ProctorError, ValueError):
    """Raised on API misuse: missing work units, bad options, no logger."""

    kind = FailureKind.USAGE


class UnsupportedOperationError(ProctorError, NotImplementedError):
    """Raised by data-transfer entry points the local engine does not provide."""

    kind = FailureKind.UNSUPPORTED

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} is not supported for local commands")


def log_exception(logger: LogSink, error: BaseException) -> None:
    """Emit the EXCEPTION log entry for ``error`` without raising it."""

    kind = str(error.kind) if isinstance(error, ProctorError) else "unexpected"
    logger.critical(
        "EXCEPTION",
        error_type=type(error).__name__,
        kind=kind,
        message=str(error),
    )


def log_and_raise(logger: LogSink | None, error: ProctorError) -> NoReturn:
    """Emit the EXCEPTION log entry for ``error`` and raise it."""

    if logger is None:
        raise UsageError("A logging sink is required for direct logging support.")
    log_exception(logger, error)
    raise error
