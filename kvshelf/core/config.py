"""
Configuration system for kvshelf.

Resolves where the Index, the Values Directory and the journal live.
Uses Pydantic v2 for validation and immutable config objects.

Configuration Hierarchy (highest priority first):
1. Keyword overrides (CLI options passed to load_config)
2. Environment variables (KVSHELF_*)
3. YAML configuration file
4. Pydantic field defaults
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from kvshelf.core.errors import ConfigError

ENV_PREFIX = "KVSHELF_"
APP_DIR = "kvshelf"
CONFIG_FILE = "config.yaml"


def default_root() -> Path:
    """Fixed ``kvshelf`` subdirectory of the user's config home."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / APP_DIR


class StoreConfig(BaseModel):
    """Locations of the store's on-disk artifacts."""

    model_config = ConfigDict(frozen=True)

    root: Path = Field(default_factory=default_root, description="Directory holding the store")
    index_file: str = Field(default="index.json", description="Index file name, relative to root")
    values_dir: str = Field(default="values", description="Values Directory name, relative to root")
    journal: bool = Field(default=True, description="Record operations in the journal")
    journal_file: str = Field(default="journal.db", description="Journal database, relative to root")

    @field_validator("root")
    @classmethod
    def expand_root(cls, v: Path) -> Path:
        return Path(v).expanduser()

    @field_validator("index_file", "values_dir", "journal_file")
    @classmethod
    def validate_relative(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        if Path(v).is_absolute() or ".." in Path(v).parts:
            raise ValueError(f"must be a path relative to root, got {v!r}")
        return v

    def index_path(self) -> Path:
        return self.root / self.index_file

    def values_dir_path(self) -> Path:
        return self.root / self.values_dir

    def journal_path(self) -> Path:
        return self.root / self.journal_file

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "StoreConfig":
        """Load configuration from a YAML file (no env or overrides)."""
        return cls.model_validate(_read_yaml(Path(path)))


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return data


def _env_config(prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """Collect KVSHELF_* variables that name StoreConfig fields.

    Args:
        prefix: Environment variable prefix

    Returns:
        Dictionary of field name -> raw string value
    """
    config: Dict[str, Any] = {}
    fields = set(StoreConfig.model_fields)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        field = key[len(prefix):].lower()
        if field in fields:
            config[field] = _convert_env_value(value)

    return config


def _convert_env_value(value: str) -> Union[str, bool]:
    """Convert environment variable string to bool where it reads as one."""
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False
    return value


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> StoreConfig:
    """Load configuration with hierarchy support.

    Args:
        config_path: Explicit YAML file. When omitted, ``<root>/config.yaml``
            is read if it exists (root resolved from overrides, env, default).
        **overrides: Field values that win over everything else; None is ignored

    Returns:
        Validated StoreConfig

    Raises:
        ConfigError: If the YAML file is malformed or missing
        ValidationError: If the merged values are invalid
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    env = _env_config()

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        file_data = _read_yaml(config_path)
    else:
        root = overrides.get("root") or env.get("root") or default_root()
        candidate = Path(root).expanduser() / CONFIG_FILE
        file_data = _read_yaml(candidate) if candidate.exists() else {}

    merged: Dict[str, Any] = {}
    merged.update(file_data)
    merged.update(env)
    merged.update(overrides)

    return StoreConfig.model_validate(merged)


__all__ = [
    "StoreConfig",
    "load_config",
    "default_root",
]
