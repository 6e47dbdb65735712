"""Pipe pair connecting a child's stdout/stderr to the parent."""

from __future__ import annotations

import os

from proctor.lib.exec.types import StreamOrigin


class PipePair:
    """Two unidirectional pipes, one per output stream.

    The write ends go to the child; the parent must drop its copies right
    after spawn or the read ends never see end-of-stream.
    """

    def __init__(self) -> None:
        self.stdout_read, self.stdout_write = os.pipe()
        try:
            self.stderr_read, self.stderr_write = os.pipe()
        except OSError:
            os.close(self.stdout_read)
            os.close(self.stdout_write)
            raise
        self._closed: set[int] = set()

    def read_ends(self) -> dict[int, StreamOrigin]:
        return {
            self.stdout_read: StreamOrigin.STDOUT,
            self.stderr_read: StreamOrigin.STDERR,
        }

    def close_write_ends(self) -> None:
        self._close(self.stdout_write)
        self._close(self.stderr_write)

    def close(self) -> None:
        for fd in (self.stdout_write, self.stderr_write, self.stdout_read, self.stderr_read):
            self._close(fd)

    def _close(self, fd: int) -> None:
        if fd in self._closed:
            return
        self._closed.add(fd)
        os.close(fd)

    def __enter__(self) -> PipePair:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        _ = (exc_type, exc, tb)
        self.close()
