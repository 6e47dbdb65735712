"""Readiness-driven capture of a child's stdout and stderr."""

from __future__ import annotations

import getpass
import os
import selectors
import socket
from collections.abc import Mapping
from functools import cache
from typing import TYPE_CHECKING

from proctor.lib.config.settings import ProctorConfig
from proctor.lib.exec.errors import CommandTimeoutError
from proctor.lib.exec.types import StreamOrigin

if TYPE_CHECKING:
    from proctor.lib.exec.timeout import Deadline
    from proctor.lib.sinks import LogSink, OutputSink

DEFAULT_CHUNK_SIZE = ProctorConfig().chunk_size
_HEADER_RULE = "=" * 8


@cache
def session_tag() -> str:
    """Return ``user@hostname`` for the current shell."""

    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = str(os.getuid())
    return f"{user}@{socket.getfqdn()}"


def log_header(what: str, tag: str | None = None) -> str:
    label = f"[ {what} ]"
    return "".join(
        (_HEADER_RULE, label, _HEADER_RULE, f"[ {tag or session_tag()} ]", _HEADER_RULE, label, _HEADER_RULE)
    )


class StreamMultiplexer:
    """Forward tagged chunks from both streams to sinks and one combined buffer.

    A header is logged whenever the origin differs from the previous chunk's
    origin, so consecutive chunks from the same stream share one header.
    """

    def __init__(
        self,
        *,
        sink: OutputSink,
        logger: LogSink,
        silence: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        tag: str | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0.")
        self._sink = sink
        self._logger = logger
        self._silence = silence
        self._chunk_size = chunk_size
        self._tag = tag
        self._last_origin: StreamOrigin | None = None
        self._buffer = bytearray()

    @property
    def output(self) -> bytes:
        return bytes(self._buffer)

    def dispatch(self, origin: StreamOrigin, data: bytes) -> None:
        """Handle one chunk read from ``origin``."""

        if origin == StreamOrigin.STDOUT:
            log = self._logger.debug
            write = self._sink.write_stdout
        else:
            log = self._logger.warning
            write = self._sink.write_stderr

        if origin != self._last_origin:
            log(log_header(origin.upper(), self._tag), origin=str(origin))
            self._last_origin = origin

        if not self._silence:
            write(data)
        log("child output", origin=str(origin), data=data.decode("utf-8", errors="replace"))
        self._buffer.extend(data)

    def run(self, read_ends: Mapping[int, StreamOrigin], deadline: Deadline) -> bytes:
        """Pump both read ends until end-of-stream on each, or raise on deadline."""

        with selectors.DefaultSelector() as selector:
            for fd, origin in read_ends.items():
                selector.register(fd, selectors.EVENT_READ, origin)

            while selector.get_map():
                remaining = deadline.remaining()
                if remaining <= 0:
                    raise CommandTimeoutError(deadline.timeout_seconds)

                for key, _events in selector.select(timeout=remaining):
                    data = os.read(key.fd, self._chunk_size)
                    if not data:
                        selector.unregister(key.fd)
                        continue
                    self.dispatch(key.data, data)

        return self.output
