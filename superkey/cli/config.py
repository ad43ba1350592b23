"""CLI configuration loading.

Values come from a YAML file (``$SUPERKEY_CONFIG`` or ``~/.superkey/config.yaml``)
and are overridden by ``SUPERKEY_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from superkey.errors import ConfigError
from superkey.forge.naming import DEFAULT_PREFIX
from superkey.forge.templater import MissingValuePolicy

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Runtime configuration.

    Attributes:
        aws_profile: AWS profile name (optional)
        region: AWS region for created buckets
        log_level: Root log level
        name_prefix: Vendor prefix of generated resource names
        missing_value_policy: Handling of unresolvable payload placeholders
        storage_path: Base directory for ledgers and audit logs (optional)
    """

    aws_profile: Optional[str] = None
    region: str = "us-east-1"
    log_level: str = "INFO"
    name_prefix: str = DEFAULT_PREFIX
    missing_value_policy: MissingValuePolicy = MissingValuePolicy.EMPTY
    storage_path: Optional[str] = None

    @classmethod
    def default_path(cls) -> Path:
        env_path = os.environ.get("SUPERKEY_CONFIG")
        if env_path:
            return Path(env_path)
        return Path.home() / ".superkey" / "config.yaml"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> Config:
        """Load configuration from file and environment.

        Args:
            path: Config file path (default: ``default_path()``); a missing
                file means built-in defaults

        Raises:
            ConfigError: If the file is malformed or a value is invalid
        """
        path = path or cls.default_path()
        values: dict[str, Any] = {}

        if path.exists():
            try:
                with open(path, "r") as f:
                    values = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid config file {path}: {e}") from e

            if not isinstance(values, dict):
                raise ConfigError(f"Config file {path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        for name in known:
            env_value = os.environ.get(f"SUPERKEY_{name.upper()}")
            if env_value:
                values[name] = env_value

        return cls.from_dict(values)

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> Config:
        config = cls(**{k: v for k, v in values.items() if k != "missing_value_policy"})

        if "missing_value_policy" in values:
            try:
                config.missing_value_policy = MissingValuePolicy(str(values["missing_value_policy"]).lower())
            except ValueError:
                choices = ", ".join(p.value for p in MissingValuePolicy)
                raise ConfigError(
                    f"Invalid missing_value_policy: {values['missing_value_policy']} (choose {choices})"
                )

        config.log_level = str(config.log_level).upper()
        if config.log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {config.log_level}")

        if not config.region:
            raise ConfigError("region must not be empty")

        return config
