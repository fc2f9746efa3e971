"""
Configuration for model generation.

Settings are merged in order: defaults, then a JSON file (modelgen.json in
the working directory when no path is given), then explicit overrides.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from .errors import ConfigError

DEFAULT_CONFIG_FILE = "modelgen.json"


@dataclass
class GeneratorConfig:
    """Settings for one project."""

    # Package identifier passed to templates; defaults to the project directory name
    app_name: str = ""

    # Output locations, relative to the project root
    migrations_dir: str = "migrations"
    tests_dir: str = "tests/models"

    # Alternate type mapping table (JSON object of token -> schema type)
    mappings_file: str | None = None

    # Post-generation steps; default to `<app_name> db migrate|entities`
    migrate_command: list[str] = field(default_factory=list)
    entities_command: list[str] = field(default_factory=list)

    # Overwrite files even if they were edited after generation
    force: bool = False

    # Unknown keys from the config file
    custom: dict[str, Any] = field(default_factory=dict)

    def template_variables(self) -> dict[str, Any]:
        """Settings exposed to templates alongside the generation context."""
        return {"migrations_dir": self.migrations_dir, "tests_dir": self.tests_dir}


def _load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    if path.suffix.lower() != ".json":
        raise ConfigError(f"Configuration file must be JSON: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in configuration file {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to load configuration file {path}: {e}")

    if not isinstance(config, dict):
        raise ConfigError(f"Configuration file must contain a JSON object: {path}")
    return config


def _dict_to_config(config_dict: dict[str, Any]) -> GeneratorConfig:
    """Convert a dictionary to GeneratorConfig, collecting unknown keys in `custom`."""
    known_fields = {f.name for f in fields(GeneratorConfig)}
    config_args: dict[str, Any] = {}
    custom_args: dict[str, Any] = {}

    for key, value in config_dict.items():
        if key in known_fields:
            config_args[key] = value
        else:
            custom_args[key] = value

    if custom_args:
        config_args["custom"] = {**config_args.get("custom", {}), **custom_args}

    for key in ("migrate_command", "entities_command"):
        value = config_args.get(key)
        if value is not None and (
            not isinstance(value, list) or not all(isinstance(v, str) for v in value)
        ):
            raise ConfigError(f"{key} must be a list of strings, got {value!r}")

    return GeneratorConfig(**config_args)


def load_config(
    config_file: str | Path | None = None,
    custom_config: dict[str, Any] | None = None,
    cwd: Path | None = None,
) -> GeneratorConfig:
    """
    Load the merged configuration.

    Args:
        config_file: Explicit JSON config path; must exist if given
        custom_config: Overrides applied last (e.g. from CLI flags)
        cwd: Project directory; defaults to the current directory
    """
    project_dir = Path(cwd) if cwd else Path.cwd()
    merged: dict[str, Any] = {}

    if config_file:
        merged.update(_load_config_file(Path(config_file)))
    elif (project_dir / DEFAULT_CONFIG_FILE).exists():
        merged.update(_load_config_file(project_dir / DEFAULT_CONFIG_FILE))

    if custom_config:
        merged.update(custom_config)

    config = _dict_to_config(merged)
    if not config.app_name:
        config.app_name = project_dir.resolve().name
    if not config.migrate_command:
        config.migrate_command = [config.app_name, "db", "migrate"]
    if not config.entities_command:
        config.entities_command = [config.app_name, "db", "entities"]
    return config
