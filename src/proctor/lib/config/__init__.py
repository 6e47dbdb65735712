"""Configuration loading."""

from proctor.lib.config._paths import resolve_project_root
from proctor.lib.config.settings import ProctorConfig, config_path, load_config

__all__ = ["ProctorConfig", "config_path", "load_config", "resolve_project_root"]
