"""Output and logging sinks the execution engine writes live bytes into."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Protocol, runtime_checkable


@runtime_checkable
class LogSink(Protocol):
    """Leveled logging sink; structlog bound loggers satisfy this protocol."""

    def debug(self, event: str, *args: Any, **kw: Any) -> Any: ...

    def info(self, event: str, *args: Any, **kw: Any) -> Any: ...

    def warning(self, event: str, *args: Any, **kw: Any) -> Any: ...

    def error(self, event: str, *args: Any, **kw: Any) -> Any: ...

    def critical(self, event: str, *args: Any, **kw: Any) -> Any: ...


class OutputSink(Protocol):
    """Pair of write-only byte destinations for live child output."""

    def write_stdout(self, data: bytes) -> None: ...

    def write_stderr(self, data: bytes) -> None: ...


class ConsoleSink:
    """Forward child output to this process's own stdout/stderr."""

    def __init__(self, stdout: BinaryIO | None = None, stderr: BinaryIO | None = None) -> None:
        self._stdout = stdout
        self._stderr = stderr

    def write_stdout(self, data: bytes) -> None:
        stream = self._stdout or sys.stdout.buffer
        stream.write(data)
        stream.flush()

    def write_stderr(self, data: bytes) -> None:
        stream = self._stderr or sys.stderr.buffer
        stream.write(data)
        stream.flush()


@dataclass(slots=True)
class BufferSink:
    """In-memory sink; useful when a caller wants output kept apart per stream."""

    stdout: bytearray = field(default_factory=bytearray)
    stderr: bytearray = field(default_factory=bytearray)

    def write_stdout(self, data: bytes) -> None:
        self.stdout.extend(data)

    def write_stderr(self, data: bytes) -> None:
        self.stderr.extend(data)
