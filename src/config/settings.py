"""
Configuration loader and helpers for the storage engine.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_CONFIG_PATH = Path("config.yaml")
ENV_CONFIG_PATH = "FILE_OPS_CONFIG"


@dataclass(frozen=True)
class AppConfig:
    """Container for raw configuration data and path helpers."""

    root_dir: Path
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Path | None = None) -> "AppConfig":
        """Load configuration from YAML and normalize the root directory."""
        config_value = os.environ.get(ENV_CONFIG_PATH)
        config_path = path
        if config_path is None:
            config_path = Path(config_value) if config_value else DEFAULT_CONFIG_PATH
        config_path = config_path.expanduser()
        if not config_path.is_absolute():
            config_path = (Path.cwd() / config_path).resolve()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping: {config_path}")
        return cls(root_dir=config_path.parent, raw=data)

    @classmethod
    def defaults(cls, root_dir: Path | None = None) -> "AppConfig":
        """Return an empty configuration so every lookup falls back to its default."""
        return cls(root_dir=root_dir or Path.cwd(), raw={})

    def get(self, *keys: str, default: Any = None) -> Any:
        """Retrieve nested configuration values with an optional default."""
        node: Any = self.raw
        for key in keys:
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def with_value(self, *keys: str, value: Any) -> "AppConfig":
        """Return a copy with one nested value replaced, creating missing sections."""
        raw = copy.deepcopy(self.raw)
        node = raw
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[keys[-1]] = value
        return AppConfig(root_dir=self.root_dir, raw=raw)

    def get_int(self, *keys: str, default: int) -> int:
        return int(self.get(*keys, default=default))

    def get_paths(self, *keys: str) -> list[Path]:
        """Resolve a list of paths; relative entries are anchored at the config directory."""
        values = self.get(*keys, default=[]) or []
        paths = []
        for value in values:
            path = Path(value).expanduser()
            if not path.is_absolute():
                path = (self.root_dir / path).resolve()
            paths.append(path)
        return paths

    def resolve_path(self, *keys: str, default: str | None = None) -> Path:
        """Resolve a path from configuration keys to an absolute Path."""
        value = self.get(*keys, default=default)
        if value is None:
            raise KeyError(f"Missing config path for {'.'.join(keys)}")
        path = Path(value)
        if not path.is_absolute():
            path = (self.root_dir / path).resolve()
        return path
