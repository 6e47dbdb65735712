"""Child process spawning."""

from __future__ import annotations

import os
import subprocess
from typing import TYPE_CHECKING, NoReturn

from proctor.lib.exec.errors import LaunchError, log_and_raise

if TYPE_CHECKING:
    from proctor.lib.exec.pipes import PipePair
    from proctor.lib.exec.types import Invocation
    from proctor.lib.sinks import LogSink

SHELL = "/bin/sh"


def launch_child(
    invocation: Invocation,
    pipes: PipePair,
    *,
    logger: LogSink,
) -> subprocess.Popen[bytes]:
    """Spawn ``invocation.command`` through the shell with stdin on /dev/null.

    The parent's copies of the pipe write ends are closed before returning.
    """

    try:
        process = subprocess.Popen(
            invocation.command,
            shell=True,
            executable=SHELL,
            stdin=subprocess.DEVNULL,
            stdout=pipes.stdout_write,
            stderr=pipes.stderr_write,
            close_fds=True,
        )
    except OSError as exc:
        pipes.close()
        log_and_raise(logger, LaunchError(invocation.command, exc.strerror or str(exc)))
    finally:
        pipes.close_write_ends()

    logger.debug("Started child process.", pid=process.pid, command=invocation.command)
    return process


def replace_current_process(command: str, *, logger: LogSink) -> NoReturn:
    """Replace this process image with the shell running ``command``."""

    logger.critical("REPLACING CURRENT PROCESS - GOODBYE!", command=command)
    try:
        os.execv(SHELL, [SHELL, "-c", command])
    except OSError as exc:
        log_and_raise(logger, LaunchError(command, exc.strerror or str(exc)))
