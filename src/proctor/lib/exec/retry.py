"""Bounded retry with a fixed delay between attempts."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, ParamSpec, TypeVar

import structlog

from proctor.lib.config.settings import ProctorConfig
from proctor.lib.exec.errors import UsageError, log_and_raise

if TYPE_CHECKING:
    from proctor.lib.sinks import LogSink

_DEFAULT_CONFIG = ProctorConfig()
DEFAULT_TRIES = _DEFAULT_CONFIG.retry_tries
DEFAULT_DELAY_SECONDS = _DEFAULT_CONFIG.retry_delay_seconds

T = TypeVar("T")
P = ParamSpec("P")

FailureClasses = type[BaseException] | tuple[type[BaseException], ...]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Which failures to retry, how many attempts in total, and the pause between."""

    tries: int = DEFAULT_TRIES
    on: FailureClasses = Exception
    delay: float = DEFAULT_DELAY_SECONDS


def _more_tries(count: int) -> str:
    return f"{count} more {'tries' if count > 1 else 'try'}"


def retry_call(
    work: Callable[[], T] | None,
    *,
    tries: int = DEFAULT_TRIES,
    on: FailureClasses = Exception,
    delay: float = DEFAULT_DELAY_SECONDS,
    logger: LogSink | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``work`` until it succeeds or ``tries`` attempts have failed.

    Only exceptions matching ``on`` are retried; anything else propagates
    on the spot. Once attempts run out the last failure is re-raised as is.
    """

    log = logger if logger is not None else structlog.get_logger(__name__)
    log.debug("Retry options.", tries=tries, on=repr(on), delay=delay)

    if work is None:
        log_and_raise(log, UsageError("You must supply a unit of work to retry."))
    if tries < 1:
        log_and_raise(log, UsageError(f"tries must be a positive integer, got {tries!r}."))
    if delay < 0:
        log_and_raise(log, UsageError(f"delay must be >= 0, got {delay!r}."))

    remaining = tries
    while True:
        try:
            return work()
        except on as exc:
            remaining -= 1
            if remaining > 0:
                log.warning(
                    f"Caught {exc!r}, we will give it {_more_tries(remaining)}.",
                    remaining_tries=remaining,
                )
                sleep(delay)
                continue
            log.critical(
                f"Caught {exc!r} and we have no more tries left, giving up.",
                tries=tries,
            )
            raise


def retrying(
    policy: RetryPolicy | None = None,
    *,
    logger: LogSink | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator form of :func:`retry_call`."""

    resolved = policy or RetryPolicy()

    def decorate(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return retry_call(
                lambda: func(*args, **kwargs),
                tries=resolved.tries,
                on=resolved.on,
                delay=resolved.delay,
                logger=logger,
                sleep=sleep,
            )

        return wrapper

    return decorate
