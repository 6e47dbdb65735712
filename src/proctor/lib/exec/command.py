"""Local command execution with live output capture."""

from __future__ import annotations

import asyncio
import subprocess
from dataclasses import asdict
from typing import NoReturn

import structlog

from proctor.lib.config.settings import ProctorConfig
from proctor.lib.exec.errors import (
    CommandTimeoutError,
    ProctorError,
    UnsupportedOperationError,
    UsageError,
    log_and_raise,
    log_exception,
)
from proctor.lib.exec.exit_policy import check_exit_status, exit_status_from_returncode
from proctor.lib.exec.launch import launch_child, replace_current_process
from proctor.lib.exec.multiplex import StreamMultiplexer, log_header, session_tag
from proctor.lib.exec.pipes import PipePair
from proctor.lib.exec.retry import RetryPolicy, retry_call
from proctor.lib.exec.timeout import Deadline, terminate_process
from proctor.lib.exec.types import ExecutionResult, Failed, Invocation, Outcome, Succeeded
from proctor.lib.sinks import ConsoleSink, LogSink, OutputSink


class Command:
    """Execute shell commands locally.

    Example::

        cmd = Command()
        result = cmd.execute("hostname -f")
        print(result.text, result.exit_code)

    Output goes live to ``sink`` (the terminal by default) and to ``logger``;
    both streams are also collected into ``ExecutionResult.output``.
    """

    def __init__(
        self,
        config: ProctorConfig | None = None,
        *,
        sink: OutputSink | None = None,
        logger: LogSink | None = None,
        tag: str | None = None,
    ) -> None:
        self.config = config or ProctorConfig()
        self.sink: OutputSink = sink or ConsoleSink()
        self.logger: LogSink = logger if logger is not None else structlog.get_logger(__name__)
        self._tag = tag
        self.logger.debug("Command config.", **asdict(self.config))

    @property
    def tag(self) -> str:
        return self._tag or session_tag()

    def invocation(self, command: str, **options: object) -> Invocation:
        """Build an invocation, filling unset options from config."""

        merged: dict[str, object] = {
            "timeout": self.config.timeout_seconds,
            "ignore_exit_status": self.config.ignore_exit_status,
        }
        merged.update(options)
        try:
            return Invocation.from_options(command, merged)
        except UsageError as exc:
            log_and_raise(self.logger, exc)

    def resolve(self, command: str | Invocation, **options: object) -> Invocation:
        """Return ``command`` as an invocation; options only apply to strings."""

        if not isinstance(command, Invocation):
            return self.invocation(command, **options)
        if options:
            log_and_raise(
                self.logger,
                UsageError(f"Options {', '.join(sorted(options))} given with a prepared Invocation."),
            )
        return command

    def execute(self, command: str | Invocation, **options: object) -> ExecutionResult:
        """Run ``command`` through the shell and return its combined output.

        Raises ``LaunchError``, ``CommandTimeoutError`` or ``ExitStatusError``.
        """

        invocation = self.resolve(command, **options)
        log = self.logger
        log.info("Executing command.", command=invocation.command)
        log.debug("Invocation options.", **asdict(invocation))

        with PipePair() as pipes:
            process = launch_child(invocation, pipes, logger=log)
            log.debug(log_header("COMMAND", self.tag))
            log.debug(invocation.command)
            log.debug(log_header("STARTED", self.tag))

            multiplexer = StreamMultiplexer(
                sink=self.sink,
                logger=log,
                silence=invocation.silence,
                chunk_size=self.config.chunk_size,
                tag=self.tag,
            )
            deadline = Deadline(invocation.timeout_seconds)
            try:
                output = multiplexer.run(pipes.read_ends(), deadline)
                returncode = _wait(process, deadline)
            except CommandTimeoutError as exc:
                log.debug(log_header("TIMEOUT", self.tag))
                self._handle_timeout(process, exc)
                log_and_raise(log, exc)
            except BaseException as exc:
                terminate_process(process, grace_seconds=self.config.kill_grace_seconds)
                log_exception(log, exc)
                raise

        exit_code = exit_status_from_returncode(returncode)
        log.debug(log_header("STOPPED", self.tag))
        log.debug("Command finished.", exit_code=exit_code)
        return check_exit_status(invocation, exit_code, output, logger=log)

    def _handle_timeout(
        self,
        process: subprocess.Popen[bytes],
        error: CommandTimeoutError,
    ) -> None:
        if self.config.terminate_on_timeout:
            terminate_process(process, grace_seconds=self.config.kill_grace_seconds)
            return
        error.process = process
        self.logger.warning(
            "Timed-out child left running.",
            pid=process.pid,
        )

    def attempt(self, command: str | Invocation, **options: object) -> Outcome:
        """Like :meth:`execute`, but return a tagged outcome instead of raising."""

        try:
            return Succeeded(self.execute(command, **options))
        except ProctorError as exc:
            return Failed(exc)

    def execute_with_retry(
        self,
        command: str | Invocation,
        policy: RetryPolicy | None = None,
        **options: object,
    ) -> ExecutionResult:
        """Re-run the whole command on failures enrolled in ``policy``."""

        resolved = policy or RetryPolicy(
            tries=self.config.retry_tries,
            delay=self.config.retry_delay_seconds,
        )
        invocation = self.resolve(command, **options)
        return retry_call(
            lambda: self.execute(invocation),
            tries=resolved.tries,
            on=resolved.on,
            delay=resolved.delay,
            logger=self.logger,
        )

    async def execute_async(self, command: str | Invocation, **options: object) -> ExecutionResult:
        """Run :meth:`execute` in a worker thread for asyncio callers."""

        return await asyncio.to_thread(self.execute, command, **options)

    def replace_process(self, command: str) -> NoReturn:
        replace_current_process(command, logger=self.logger)

    def upload(self, *args: object) -> NoReturn:
        _ = args
        log_and_raise(self.logger, UnsupportedOperationError("upload"))

    def download(self, *args: object) -> NoReturn:
        _ = args
        log_and_raise(self.logger, UnsupportedOperationError("download"))


def _wait(process: subprocess.Popen[bytes], deadline: Deadline) -> int:
    # Streams can close before the child exits; the deadline still applies.
    try:
        return process.wait(timeout=max(deadline.remaining(), 0.0))
    except subprocess.TimeoutExpired:
        raise CommandTimeoutError(deadline.timeout_seconds) from None
