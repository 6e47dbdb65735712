"""Stream multiplexer, deadline and pipe pair tests."""

from __future__ import annotations

import os

import pytest

from proctor.lib.exec.errors import CommandTimeoutError
from proctor.lib.exec.multiplex import StreamMultiplexer, log_header
from proctor.lib.exec.pipes import PipePair
from proctor.lib.exec.timeout import Deadline
from proctor.lib.exec.types import StreamOrigin
from proctor.lib.sinks import BufferSink

from conftest import RecordingLogger


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _multiplexer(recorder: RecordingLogger, sink: BufferSink, *, silence: bool = False) -> StreamMultiplexer:
    return StreamMultiplexer(sink=sink, logger=recorder, silence=silence, tag="me@host")


def test_log_header_names_origin_and_tag() -> None:
    header = log_header("STDOUT", "me@host")

    assert header == (
        "========[ STDOUT ]========[ me@host ]========[ STDOUT ]========"
    )


def test_dispatch_emits_header_only_on_transition(recorder: RecordingLogger) -> None:
    sink = BufferSink()
    multiplexer = _multiplexer(recorder, sink)

    multiplexer.dispatch(StreamOrigin.STDOUT, b"a")
    multiplexer.dispatch(StreamOrigin.STDOUT, b"b")
    multiplexer.dispatch(StreamOrigin.STDERR, b"c")
    multiplexer.dispatch(StreamOrigin.STDERR, b"d")
    multiplexer.dispatch(StreamOrigin.STDOUT, b"e")

    assert len(recorder.headers("STDOUT")) == 2
    assert len(recorder.headers("STDERR")) == 1
    header_order = [
        entry.fields["origin"]
        for entry in recorder.entries
        if entry.event.startswith("========")
    ]
    assert header_order == ["stdout", "stderr", "stdout"]
    assert multiplexer.output == b"abcde"
    assert bytes(sink.stdout) == b"abe"
    assert bytes(sink.stderr) == b"cd"


def test_dispatch_log_levels_differ_by_origin(recorder: RecordingLogger) -> None:
    multiplexer = _multiplexer(recorder, BufferSink())

    multiplexer.dispatch(StreamOrigin.STDOUT, b"out")
    multiplexer.dispatch(StreamOrigin.STDERR, b"err")

    assert [entry.level for entry in recorder.chunks("stdout")] == ["debug"]
    assert [entry.level for entry in recorder.chunks("stderr")] == ["warning"]
    assert recorder.headers("STDOUT")[0].level == "debug"
    assert recorder.headers("STDERR")[0].level == "warning"


def test_dispatch_silenced_still_buffers(recorder: RecordingLogger) -> None:
    sink = BufferSink()
    multiplexer = _multiplexer(recorder, sink, silence=True)

    multiplexer.dispatch(StreamOrigin.STDERR, b"quiet")

    assert multiplexer.output == b"quiet"
    assert bytes(sink.stderr) == b""
    assert recorder.chunks("stderr")[0].fields["data"] == "quiet"


def test_run_reads_until_both_streams_close(recorder: RecordingLogger) -> None:
    sink = BufferSink()
    multiplexer = _multiplexer(recorder, sink)

    with PipePair() as pipes:
        os.write(pipes.stdout_write, b"first")
        os.write(pipes.stderr_write, b"second")
        pipes.close_write_ends()

        output = multiplexer.run(pipes.read_ends(), Deadline(5.0))

    assert output in (b"firstsecond", b"secondfirst")
    assert bytes(sink.stdout) == b"first"
    assert bytes(sink.stderr) == b"second"


def test_run_raises_when_streams_stay_open(recorder: RecordingLogger) -> None:
    multiplexer = _multiplexer(recorder, BufferSink())

    with PipePair() as pipes:
        with pytest.raises(CommandTimeoutError) as exc_info:
            multiplexer.run(pipes.read_ends(), Deadline(0.2))

    assert exc_info.value.timeout_seconds == 0.2


def test_run_rejects_nonpositive_chunk_size(recorder: RecordingLogger) -> None:
    with pytest.raises(ValueError, match="chunk_size"):
        StreamMultiplexer(sink=BufferSink(), logger=recorder, chunk_size=0)


def test_deadline_remaining_counts_down() -> None:
    clock = FakeClock()
    deadline = Deadline(10.0, clock=clock)

    assert deadline.remaining() == 10.0
    clock.now += 4.0
    assert deadline.remaining() == 6.0
    assert not deadline.expired
    clock.now += 7.0
    assert deadline.remaining() == 0.0
    assert deadline.expired


def test_deadline_rejects_nonpositive_timeout() -> None:
    with pytest.raises(ValueError):
        Deadline(0)


def test_pipe_pair_close_is_idempotent() -> None:
    pipes = PipePair()
    pipes.close_write_ends()
    pipes.close()
    pipes.close()
