"""Configuration loading for cargo-cgp (.cargo-cgp.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

CONFIG_FILENAME = ".cargo-cgp.yml"
MESSAGE_FORMATS = ("human", "json")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class CgpConfig:
    """Settings for a single cargo-cgp invocation."""

    root: Path
    enabled: bool = True
    column_tolerance: int = 2
    message_format: str = "human"
    show_original: bool = False
    cargo: Optional[str] = None
    extra_args: List[str] = field(default_factory=list)

    def cargo_executable(self, environ: Mapping[str, str] | None = None) -> str:
        """Return the cargo binary, preferring config, then $CARGO, then PATH lookup."""
        if self.cargo:
            return self.cargo
        env = os.environ if environ is None else environ
        return env.get("CARGO") or "cargo"


def load_config(config_path: Path) -> CgpConfig:
    """Load configuration from disk, returning defaults when no file exists."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CgpConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = CgpConfig(root=root)

    enabled = _as_bool(data.get("enabled"))
    if enabled is not None:
        config.enabled = enabled

    tolerance = _as_int(data.get("column_tolerance"))
    if tolerance is not None:
        if tolerance < 0:
            raise ConfigError("column_tolerance must be zero or a positive integer")
        config.column_tolerance = tolerance

    message_format = _as_str(data.get("message_format"))
    if message_format is not None:
        normalized = message_format.strip().lower()
        if normalized not in MESSAGE_FORMATS:
            allowed = ", ".join(MESSAGE_FORMATS)
            raise ConfigError(f"message_format must be one of: {allowed}")
        config.message_format = normalized

    show_original = _as_bool(data.get("show_original"))
    if show_original is not None:
        config.show_original = show_original

    config.cargo = _as_str(data.get("cargo"))
    config.extra_args = _as_str_list(data.get("extra_args"))
    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = ["CONFIG_FILENAME", "CgpConfig", "ConfigError", "load_config"]
