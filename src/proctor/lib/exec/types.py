"""Value types passed into and out of the execution engine."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from proctor.lib.exec.errors import FailureKind, ProctorError, UsageError

if TYPE_CHECKING:
    from proctor.lib.formatting import FormatContext

DEFAULT_TIMEOUT_SECONDS = 600.0

# Option name -> Invocation field name.
_OPTION_FIELDS: dict[str, str] = {
    "timeout": "timeout_seconds",
    "ignore_exit_status": "ignore_exit_status",
    "exit_code": "exit_code",
    "silence": "silence",
}


class StreamOrigin(StrEnum):
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True, slots=True)
class Invocation:
    """One requested command execution with its options."""

    command: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    exit_code: int = 0
    ignore_exit_status: bool = False
    silence: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.command, str):
            raise UsageError(f"command must be a string, got {type(self.command).__name__}.")
        if not self.command.strip():
            raise UsageError("Cannot execute an empty command.")
        timeout = self.timeout_seconds
        if isinstance(timeout, bool) or not isinstance(timeout, int | float):
            raise UsageError(f"timeout must be a number, got {timeout!r}.")
        if not math.isfinite(timeout) or timeout <= 0:
            raise UsageError(f"timeout must be a finite number > 0, got {timeout!r}.")
        if isinstance(self.exit_code, bool) or not isinstance(self.exit_code, int):
            raise UsageError(f"exit_code must be an integer, got {self.exit_code!r}.")
        for name in ("ignore_exit_status", "silence"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise UsageError(f"{name} must be a boolean, got {value!r}.")

    @classmethod
    def from_options(cls, command: str, options: Mapping[str, object]) -> Invocation:
        """Build an invocation from option names, rejecting unknown keys."""

        unknown = sorted(set(options) - set(_OPTION_FIELDS))
        if unknown:
            raise UsageError(
                f"Unknown execution option(s): {', '.join(unknown)}. "
                f"Expected any of: {', '.join(sorted(_OPTION_FIELDS))}."
            )
        kwargs = {_OPTION_FIELDS[key]: value for key, value in options.items()}
        return cls(command=command, **kwargs)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Combined output of both streams in arrival order, plus the exit code."""

    output: bytes
    exit_code: int

    @property
    def text(self) -> str:
        return self.output.decode("utf-8", errors="replace")

    def format_text(self, ctx: FormatContext | None = None) -> str:
        lines = [f"exit_code: {self.exit_code}"]
        if ctx is not None and ctx.show_output and self.output:
            lines.insert(0, self.text.rstrip("\n"))
        if ctx is not None and ctx.verbosity > 0:
            lines.append(f"output_bytes: {len(self.output)}")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class Succeeded:
    result: ExecutionResult

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Failed:
    error: ProctorError

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> FailureKind:
        return self.error.kind


type Outcome = Succeeded | Failed
