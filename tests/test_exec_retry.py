"""Retry wrapper tests."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from proctor.lib.exec.errors import CommandTimeoutError, ExitStatusError, UsageError
from proctor.lib.exec.retry import RetryPolicy, retry_call, retrying

from conftest import RecordingLogger


class Flaky:
    """Fail a fixed number of times, then return a value."""

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or CommandTimeoutError(1.0)
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def test_retry_succeeds_after_two_failures(recorder: RecordingLogger) -> None:
    work = Flaky(failures=2)
    sleep = SleepRecorder()

    result = retry_call(work, tries=3, on=CommandTimeoutError, delay=1.5, logger=recorder, sleep=sleep)

    assert result == "ok"
    assert work.calls == 3
    assert sleep.delays == [1.5, 1.5]
    warnings = [entry for entry in recorder.entries if entry.level == "warning"]
    assert [entry.fields["remaining_tries"] for entry in warnings] == [2, 1]
    assert "2 more tries" in warnings[0].event
    assert "1 more try" in warnings[1].event


def test_non_enrolled_failure_propagates_immediately(recorder: RecordingLogger) -> None:
    work = Flaky(failures=5, error=KeyError("nope"))
    sleep = SleepRecorder()

    with pytest.raises(KeyError):
        retry_call(work, tries=2, on=CommandTimeoutError, delay=1.0, logger=recorder, sleep=sleep)

    assert work.calls == 1
    assert sleep.delays == []


def test_exhausted_attempts_reraise_original(recorder: RecordingLogger) -> None:
    original = CommandTimeoutError(2.0)
    work = Flaky(failures=10, error=original)
    sleep = SleepRecorder()

    with pytest.raises(CommandTimeoutError) as exc_info:
        retry_call(work, tries=3, on=CommandTimeoutError, delay=0.0, logger=recorder, sleep=sleep)

    assert exc_info.value is original
    assert work.calls == 3
    assert len(sleep.delays) == 2
    assert recorder.entries[-1].level == "critical"
    assert "no more tries left" in recorder.entries[-1].event


def test_single_try_never_sleeps(recorder: RecordingLogger) -> None:
    work = Flaky(failures=1)
    sleep = SleepRecorder()

    with pytest.raises(CommandTimeoutError):
        retry_call(work, logger=recorder, sleep=sleep)

    assert work.calls == 1
    assert sleep.delays == []


def test_default_catches_any_exception(recorder: RecordingLogger) -> None:
    work = Flaky(failures=1, error=RuntimeError("boom"))

    assert retry_call(work, tries=2, delay=0, logger=recorder, sleep=SleepRecorder()) == "ok"


def test_tuple_of_failure_classes(recorder: RecordingLogger) -> None:
    work = Flaky(failures=1, error=CommandTimeoutError(1.0))

    result = retry_call(
        work,
        tries=2,
        on=(ExitStatusError, CommandTimeoutError),
        delay=0,
        logger=recorder,
        sleep=SleepRecorder(),
    )

    assert result == "ok"


def test_missing_work_is_usage_error(recorder: RecordingLogger) -> None:
    with pytest.raises(UsageError, match="unit of work"):
        retry_call(None, logger=recorder)

    assert recorder.exceptions()[0].level == "critical"


@pytest.mark.parametrize(
    "kwargs",
    [
        pytest.param({"tries": 0}, id="zero-tries"),
        pytest.param({"tries": -2}, id="negative-tries"),
        pytest.param({"delay": -1.0}, id="negative-delay"),
    ],
)
def test_invalid_retry_options(recorder: RecordingLogger, kwargs: dict[str, float]) -> None:
    work = Flaky(failures=0)

    with pytest.raises(UsageError):
        retry_call(work, logger=recorder, **kwargs)  # type: ignore[arg-type]

    assert work.calls == 0


def test_retrying_decorator_passes_arguments() -> None:
    calls: list[tuple[int, str]] = []
    sleep = SleepRecorder()

    @retrying(RetryPolicy(tries=2, on=ValueError, delay=0.25), sleep=sleep)
    def flaky_add(value: int, *, label: str) -> str:
        calls.append((value, label))
        if len(calls) == 1:
            raise ValueError("first call fails")
        return f"{label}={value + 1}"

    assert flaky_add(41, label="answer") == "answer=42"
    assert calls == [(41, "answer"), (41, "answer")]
    assert sleep.delays == [0.25]
    assert flaky_add.__name__ == "flaky_add"


def test_default_logger_uses_structlog() -> None:
    work = Flaky(failures=1)

    with capture_logs() as logs:
        retry_call(work, tries=2, on=CommandTimeoutError, delay=0, sleep=SleepRecorder())

    warnings = [entry for entry in logs if entry["log_level"] == "warning"]
    assert len(warnings) == 1
    assert warnings[0]["remaining_tries"] == 1
