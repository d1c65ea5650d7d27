"""Configuration management utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import AppConfig, load_config


class ConfigManager:
    """Simple YAML-backed configuration loader."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def load(self, name: str) -> dict[str, Any]:
        """Load a YAML configuration by name without file extension."""
        return read_settings(self._base_path / f"{name}.yaml")


def read_settings(path: str | Path) -> dict[str, Any]:
    """Read a YAML settings file; an empty file yields an empty mapping."""
    with Path(path).open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file must be a YAML object: {path}")
    return loaded


def load_settings(path: str | Path) -> AppConfig:
    return load_config(read_settings(path))


__all__ = ["ConfigManager", "load_settings", "read_settings"]
