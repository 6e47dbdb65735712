"""Deadline tracking and timeout-triggered termination."""

from __future__ import annotations

import subprocess
import time
from collections.abc import Callable

from proctor.lib.config.settings import ProctorConfig
from proctor.lib.exec.errors import CommandTimeoutError

DEFAULT_KILL_GRACE_SECONDS = ProctorConfig().kill_grace_seconds

__all__ = [
    "DEFAULT_KILL_GRACE_SECONDS",
    "CommandTimeoutError",
    "Deadline",
    "terminate_process",
]


class Deadline:
    """Absolute point in time measured from construction."""

    def __init__(self, timeout_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0.")
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._expires_at = clock() + timeout_seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0


def terminate_process(
    process: subprocess.Popen[bytes],
    *,
    grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
) -> int:
    """Terminate a process, force-kill if it ignores SIGTERM, and reap it."""

    if process.poll() is not None:
        return process.returncode

    process.terminate()
    try:
        return process.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        process.kill()
        return process.wait()
