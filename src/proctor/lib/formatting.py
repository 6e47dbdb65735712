"""Text rendering knobs for result dataclasses shown by the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class FormatContext:
    """How much of a result to render as text.

    ``show_output`` prints the captured command output ahead of the summary;
    the CLI turns it on when live output was silenced.
    """

    verbosity: int = 0
    show_output: bool = False


@runtime_checkable
class TextFormattable(Protocol):
    def format_text(self, ctx: FormatContext | None = None) -> str: ...
