"""Shared pytest fixtures for engine and CLI checks."""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
import structlog

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

PACKAGE_ROOT = Path(__file__).resolve().parents[1]


@dataclass(frozen=True, slots=True)
class LogEntry:
    level: str
    event: str
    fields: dict[str, Any]


@dataclass
class RecordingLogger:
    """Log sink that keeps every entry in memory."""

    entries: list[LogEntry] = field(default_factory=list)

    def _record(self, level: str, event: str, kw: dict[str, Any]) -> None:
        self.entries.append(LogEntry(level=level, event=event, fields=dict(kw)))

    def debug(self, event: str, *args: Any, **kw: Any) -> None:
        self._record("debug", event, kw)

    def info(self, event: str, *args: Any, **kw: Any) -> None:
        self._record("info", event, kw)

    def warning(self, event: str, *args: Any, **kw: Any) -> None:
        self._record("warning", event, kw)

    def error(self, event: str, *args: Any, **kw: Any) -> None:
        self._record("error", event, kw)

    def critical(self, event: str, *args: Any, **kw: Any) -> None:
        self._record("critical", event, kw)

    def headers(self, what: str) -> list[LogEntry]:
        return [
            entry
            for entry in self.entries
            if entry.event.startswith("========") and f"[ {what} ]" in entry.event
        ]

    def chunks(self, origin: str) -> list[LogEntry]:
        return [
            entry
            for entry in self.entries
            if entry.event == "child output" and entry.fields.get("origin") == origin
        ]

    def exceptions(self) -> list[LogEntry]:
        return [entry for entry in self.entries if entry.event == "EXCEPTION"]


@dataclass(frozen=True, slots=True)
class CliResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()


@pytest.fixture
def recorder() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def package_root() -> Path:
    return PACKAGE_ROOT


@pytest.fixture
def cli_env(package_root: Path, tmp_path: Path) -> dict[str, str]:
    env = os.environ.copy()
    existing = env.get("PYTHONPATH", "")
    root = str(package_root / "src")
    env["PYTHONPATH"] = root if not existing else f"{root}:{existing}"
    env["PROCTOR_PROJECT_ROOT"] = str(tmp_path)
    for name in list(env):
        if name.startswith("PROCTOR_") and name != "PROCTOR_PROJECT_ROOT":
            env.pop(name)
    return env


@pytest.fixture
def run_proctor(package_root: Path, cli_env: dict[str, str]) -> Callable[..., CliResult]:
    def _run(args: list[str], timeout: float = 15.0) -> CliResult:
        completed = subprocess.run(
            [sys.executable, "-m", "proctor", *args],
            cwd=package_root,
            env=cli_env,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
        return CliResult(
            args=tuple(args),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    return _run
