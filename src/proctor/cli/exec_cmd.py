"""CLI command handler for running a local command."""

from __future__ import annotations

import sys
from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING, Annotated

from cyclopts import Parameter

from proctor.lib.config import load_config, resolve_project_root
from proctor.lib.exec import (
    Command,
    CommandTimeoutError,
    ExitStatusError,
    LaunchError,
    RetryPolicy,
    UsageError,
)
from proctor.lib.formatting import FormatContext
from proctor.lib.sinks import ConsoleSink

if TYPE_CHECKING:
    from cyclopts import App

Emitter = Callable[..., None]

RETRYABLE_FAILURES: dict[str, type[Exception]] = {
    "timeout": CommandTimeoutError,
    "exit-status": ExitStatusError,
    "launch": LaunchError,
}


def resolve_retry_failures(names: tuple[str, ...]) -> type[Exception] | tuple[type[Exception], ...]:
    """Map ``--retry-on`` names to failure classes; no names means any failure."""

    if not names:
        return Exception
    resolved: list[type[Exception]] = []
    for name in names:
        failure = RETRYABLE_FAILURES.get(name.strip().lower())
        if failure is None:
            raise UsageError(
                f"Unknown --retry-on value {name!r}. "
                f"Expected one of: {', '.join(sorted(RETRYABLE_FAILURES))}."
            )
        resolved.append(failure)
    return tuple(resolved)


def _exec(
    emit: Emitter,
    json_output: Callable[[], bool],
    command: Annotated[str, Parameter(help="Shell command line to execute.")],
    timeout: Annotated[
        float | None,
        Parameter(name="--timeout", help="Maximum wall-clock seconds for the command."),
    ] = None,
    exit_code: Annotated[
        int,
        Parameter(name="--exit-code", help="Expected exit status."),
    ] = 0,
    ignore_exit_status: Annotated[
        bool,
        Parameter(name="--ignore-exit-status", help="Accept any exit status."),
    ] = False,
    silence: Annotated[
        bool,
        Parameter(name="--silence", help="Do not echo live output (it is still logged)."),
    ] = False,
    show_output: Annotated[
        bool,
        Parameter(name="--show-output", help="Print the captured output with the summary."),
    ] = False,
    tries: Annotated[
        int | None,
        Parameter(name="--tries", help="Total attempts before giving up."),
    ] = None,
    retry_delay: Annotated[
        float | None,
        Parameter(name="--retry-delay", help="Seconds to wait between attempts."),
    ] = None,
    retry_on: Annotated[
        tuple[str, ...],
        Parameter(
            name="--retry-on",
            help="Failure to retry: timeout, exit-status or launch (repeatable).",
            negative_iterable=(),
        ),
    ] = (),
) -> None:
    config = load_config(resolve_project_root())
    # Keep stdout clean for the JSON payload.
    sink = ConsoleSink(stdout=sys.stderr.buffer) if json_output() else ConsoleSink()
    runner = Command(config, sink=sink)

    options: dict[str, object] = {"exit_code": exit_code, "silence": silence}
    if timeout is not None:
        options["timeout"] = timeout
    if ignore_exit_status:
        options["ignore_exit_status"] = True

    policy = RetryPolicy(
        tries=tries if tries is not None else config.retry_tries,
        on=resolve_retry_failures(retry_on),
        delay=retry_delay if retry_delay is not None else config.retry_delay_seconds,
    )
    emit(
        runner.execute_with_retry(command, policy, **options),
        FormatContext(show_output=show_output),
    )


def register_exec_commands(
    app: App,
    emit: Emitter,
    json_output: Callable[[], bool],
) -> tuple[set[str], dict[str, str]]:
    description = "Run a shell command, streaming its output, and report the result."
    handler = partial(_exec, emit, json_output)
    handler.__name__ = "cmd_exec"  # type: ignore[attr-defined]
    app.command(handler, name="exec", help=description)
    return {"exec"}, {"exec": description}
