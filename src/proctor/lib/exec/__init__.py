"""Execution engine primitives."""

from proctor.lib.exec.command import Command
from proctor.lib.exec.errors import (
    CommandTimeoutError,
    ExitStatusError,
    FailureKind,
    LaunchError,
    ProctorError,
    UnsupportedOperationError,
    UsageError,
    log_and_raise,
    log_exception,
)
from proctor.lib.exec.exit_policy import check_exit_status, exit_status_from_returncode
from proctor.lib.exec.retry import RetryPolicy, retry_call, retrying
from proctor.lib.exec.timeout import DEFAULT_KILL_GRACE_SECONDS, Deadline, terminate_process
from proctor.lib.exec.types import (
    ExecutionResult,
    Failed,
    Invocation,
    Outcome,
    StreamOrigin,
    Succeeded,
)

__all__ = [
    "DEFAULT_KILL_GRACE_SECONDS",
    "Command",
    "CommandTimeoutError",
    "Deadline",
    "ExecutionResult",
    "ExitStatusError",
    "Failed",
    "FailureKind",
    "Invocation",
    "LaunchError",
    "Outcome",
    "ProctorError",
    "RetryPolicy",
    "StreamOrigin",
    "Succeeded",
    "UnsupportedOperationError",
    "UsageError",
    "check_exit_status",
    "exit_status_from_returncode",
    "log_and_raise",
    "log_exception",
    "retry_call",
    "retrying",
    "terminate_process",
]
