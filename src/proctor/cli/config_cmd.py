"""CLI command handlers for config.* operations."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any

from proctor.lib.config import ProctorConfig, config_path, load_config, resolve_project_root
from proctor.lib.formatting import FormatContext

if TYPE_CHECKING:
    from cyclopts import App

Emitter = Callable[[Any], None]


@dataclass(frozen=True, slots=True)
class ConfigShowOutput:
    path: str
    exists: bool
    config: ProctorConfig

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        source = self.path if self.exists else f"{self.path} (not found, using defaults)"
        lines = [f"config: {source}"]
        for name in self.config.__dataclass_fields__:
            lines.append(f"{name} = {getattr(self.config, name)!r}")
        return "\n".join(lines)


def _config_show(emit: Emitter) -> None:
    root = resolve_project_root()
    path = config_path(root)
    emit(ConfigShowOutput(path=path.as_posix(), exists=path.is_file(), config=load_config(root)))


def register_config_commands(app: App, emit: Emitter) -> tuple[set[str], dict[str, str]]:
    description = "Show the resolved execution config."
    handler = partial(_config_show, emit)
    handler.__name__ = "cmd_config_show"  # type: ignore[attr-defined]
    app.command(handler, name="show", help=description)
    return {"config.show"}, {"config.show": description}
