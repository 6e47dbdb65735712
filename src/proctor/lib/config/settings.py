"""Project-level execution config loader."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import cast

logger = logging.getLogger(__name__)

CONFIG_DIRNAME = ".proctor"
CONFIG_FILENAME = "config.toml"


@dataclass(frozen=True, slots=True)
class ProctorConfig:
    """Resolved operational configuration for proctor."""

    timeout_seconds: float = 600.0
    ignore_exit_status: bool = False
    terminate_on_timeout: bool = True
    kill_grace_seconds: float = 2.0
    chunk_size: int = 65536
    retry_tries: int = 1
    retry_delay_seconds: float = 1.0


_SECTION_KEY_MAP: dict[str, dict[str, str]] = {
    "exec": {
        "timeout": "timeout_seconds",
        "timeout_seconds": "timeout_seconds",
        "ignore_exit_status": "ignore_exit_status",
        "terminate_on_timeout": "terminate_on_timeout",
        "kill_grace_seconds": "kill_grace_seconds",
        "chunk_size": "chunk_size",
    },
    "retry": {
        "tries": "retry_tries",
        "delay": "retry_delay_seconds",
        "delay_seconds": "retry_delay_seconds",
    },
}

_TOP_LEVEL_KEY_MAP: dict[str, str] = {field.name: field.name for field in fields(ProctorConfig)}

_ENV_OVERRIDE_MAP: dict[str, str] = {
    "PROCTOR_TIMEOUT_SECONDS": "timeout_seconds",
    "PROCTOR_IGNORE_EXIT_STATUS": "ignore_exit_status",
    "PROCTOR_TERMINATE_ON_TIMEOUT": "terminate_on_timeout",
    "PROCTOR_KILL_GRACE_SECONDS": "kill_grace_seconds",
    "PROCTOR_CHUNK_SIZE": "chunk_size",
    "PROCTOR_RETRY_TRIES": "retry_tries",
    "PROCTOR_RETRY_DELAY_SECONDS": "retry_delay_seconds",
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})
_POSITIVE_FIELDS = frozenset({"timeout_seconds", "chunk_size", "retry_tries"})


def _expected_type_name(field_name: str) -> str:
    if field_name in {"chunk_size", "retry_tries"}:
        return "int"
    if field_name in {"ignore_exit_status", "terminate_on_timeout"}:
        return "bool"
    return "float"


def _check_range(*, field_name: str, value: object, source: str) -> None:
    number = cast("float", value)
    if field_name in _POSITIVE_FIELDS and number <= 0:
        raise ValueError(f"Invalid value for '{source}': expected > 0, got {value!r}.")
    if number < 0:
        raise ValueError(f"Invalid value for '{source}': expected >= 0, got {value!r}.")


def _coerce_file_value(*, field_name: str, raw_value: object, source: str) -> object:
    expected = _expected_type_name(field_name)
    if expected == "bool":
        if not isinstance(raw_value, bool):
            raise ValueError(
                f"Invalid value for '{source}': expected bool, got "
                f"{type(raw_value).__name__} ({raw_value!r})."
            )
        return raw_value

    if expected == "int":
        if isinstance(raw_value, bool) or not isinstance(raw_value, int):
            raise ValueError(
                f"Invalid value for '{source}': expected int, got "
                f"{type(raw_value).__name__} ({raw_value!r})."
            )
        _check_range(field_name=field_name, value=raw_value, source=source)
        return raw_value

    if isinstance(raw_value, bool) or not isinstance(raw_value, int | float):
        raise ValueError(
            f"Invalid value for '{source}': expected float, got "
            f"{type(raw_value).__name__} ({raw_value!r})."
        )
    _check_range(field_name=field_name, value=raw_value, source=source)
    return float(raw_value)


def _coerce_env_value(*, field_name: str, raw_value: str, env_name: str) -> object:
    expected = _expected_type_name(field_name)
    normalized = raw_value.strip()
    if expected == "bool":
        lowered = normalized.lower()
        if lowered in _TRUTHY:
            return True
        if lowered in _FALSY:
            return False
        raise ValueError(
            f"Invalid environment override '{env_name}': expected bool, got {raw_value!r}."
        )

    try:
        value: object = int(normalized) if expected == "int" else float(normalized)
    except ValueError as error:
        raise ValueError(
            f"Invalid environment override '{env_name}': expected {expected}, got {raw_value!r}."
        ) from error
    _check_range(field_name=field_name, value=value, source=env_name)
    return value


def _default_values() -> dict[str, object]:
    defaults = ProctorConfig()
    return {field.name: getattr(defaults, field.name) for field in fields(ProctorConfig)}


def _apply_toml_payload(
    *,
    values: dict[str, object],
    payload: dict[str, object],
    path: Path,
) -> None:
    for key, raw_value in payload.items():
        section_map = _SECTION_KEY_MAP.get(key)
        if section_map is not None:
            if not isinstance(raw_value, dict):
                raise ValueError(f"Invalid value for '{key}' in '{path}': expected table.")
            for section_key, section_value in cast("dict[str, object]", raw_value).items():
                field_name = section_map.get(section_key)
                if field_name is None:
                    logger.warning(
                        "Ignoring unknown proctor config key '%s.%s'.",
                        key,
                        section_key,
                    )
                    continue
                values[field_name] = _coerce_file_value(
                    field_name=field_name,
                    raw_value=section_value,
                    source=f"{key}.{section_key}",
                )
            continue

        field_name = _TOP_LEVEL_KEY_MAP.get(key)
        if field_name is None:
            logger.warning("Ignoring unknown proctor config key '%s'.", key)
            continue
        values[field_name] = _coerce_file_value(
            field_name=field_name,
            raw_value=raw_value,
            source=key,
        )


def _apply_env_overrides(values: dict[str, object]) -> None:
    for env_name, field_name in _ENV_OVERRIDE_MAP.items():
        raw_value = os.getenv(env_name)
        if raw_value is None:
            continue
        values[field_name] = _coerce_env_value(
            field_name=field_name,
            raw_value=raw_value,
            env_name=env_name,
        )


def config_path(root: Path) -> Path:
    return root / CONFIG_DIRNAME / CONFIG_FILENAME


def load_config(root: Path) -> ProctorConfig:
    """Load `.proctor/config.toml` under ``root`` and apply environment overrides."""

    values = _default_values()
    path = config_path(root)
    if path.is_file():
        payload_obj = tomllib.loads(path.read_text(encoding="utf-8"))
        payload = cast("dict[str, object]", payload_obj)
        _apply_toml_payload(values=values, payload=payload, path=path)

    _apply_env_overrides(values)
    return ProctorConfig(**values)  # type: ignore[arg-type]
