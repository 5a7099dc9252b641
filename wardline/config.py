"""
Configuration loader.

Merges YAML/JSON files, a ``.env`` file, ``WL_*`` environment variables
and explicit overrides, then validates the result into WardlineConfig.
"""

from typing import Any, Dict, List, Optional, get_args, get_origin
from dataclasses import dataclass, field, fields, MISSING
from pathlib import Path
import json
import os
import types

from dotenv import dotenv_values

from .faults import ConfigError

DEFAULT_CONFIG_FILE = "wardline.yaml"
ENV_PREFIX = "WL_"
MODES = ("dev", "prod")
UNKNOWN_GUARD_POLICIES = ("ignore", "warn", "error")


@dataclass
class WardlineConfig:
    """Validated runtime settings."""

    mode: str = "dev"
    handlers_dir: str = "handlers"
    handlers_package: Optional[str] = None
    registry_path: str = ".wardline/registry.json"
    cache_path: str = ".wardline/cache.json"
    critical_files: List[str] = field(default_factory=list)
    default_ttl: int = 14400
    reply_ttl: int = 3600
    token_secret: str = ""
    token_ttl: int = 43200
    token_field: str = "_token"
    unknown_guard_policy: str = "warn"
    cache_replies_in_dev: bool = False

    @property
    def is_dev(self) -> bool:
        return self.mode == "dev"


# Nested location of each field in the merged data. A top-level key with
# the field's own name is accepted too.
FIELD_PATHS = {
    "mode": "mode",
    "handlers_dir": "handlers.dir",
    "handlers_package": "handlers.package",
    "registry_path": "registry.path",
    "critical_files": "registry.critical_files",
    "cache_path": "cache.path",
    "default_ttl": "cache.default_ttl",
    "reply_ttl": "guards.reply_ttl",
    "token_secret": "guards.token_secret",
    "token_ttl": "guards.token_ttl",
    "token_field": "guards.token_field",
    "unknown_guard_policy": "guards.unknown_policy",
    "cache_replies_in_dev": "guards.cache_replies_in_dev",
}


class ConfigLoader:
    """
    Loads and merges configuration with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = ENV_PREFIX):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        env_prefix: str = ENV_PREFIX,
    ) -> "ConfigLoader":
        """
        Load configuration from every source.

        Args:
            paths: YAML or JSON config files (defaults to ``wardline.yaml``
                when it exists)
            env_file: Path to a .env file
            overrides: Highest-precedence values, nested or flat

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if not paths and Path(DEFAULT_CONFIG_FILE).exists():
            paths = [DEFAULT_CONFIG_FILE]

        for path in paths or []:
            loader._load_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def _load_file(self, path: Path):
        if not path.exists():
            raise ConfigError(f"Config file '{path}' not found", key=str(path))
        if path.suffix == ".json":
            self._load_json_file(path)
        else:
            self._load_yaml_file(path)

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as exc:
                raise ConfigError(f"Invalid JSON in '{path}': {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file '{path}' must contain a mapping")
        self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in '{path}': {exc}") from exc
        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Config file '{path}' must contain a mapping")
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        if not Path(path).exists():
            return
        for key, value in dotenv_values(path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_nested(key, value)

    def _load_from_env(self):
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert WL_GUARDS__TOKEN_TTL to nested dict."""
        parts = key[len(self.env_prefix):].lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def to_dict(self) -> dict:
        return json.loads(json.dumps(self.config_data, default=str))

    def to_config(self) -> WardlineConfig:
        """
        Validate the merged data.

        Raises:
            ConfigError: On a mistyped field, unknown mode or unknown
                guard policy
        """
        kwargs: Dict[str, Any] = {}
        for field_info in fields(WardlineConfig):
            name = field_info.name
            value = self.get(name, MISSING)
            if value is MISSING:
                value = self.get(FIELD_PATHS[name], MISSING)
            if value is MISSING:
                continue
            if not self._check_type(value, field_info.type):
                raise ConfigError(
                    f"Config field '{name}' expected {field_info.type}, "
                    f"got {type(value).__name__}",
                    key=name,
                )
            kwargs[name] = value

        config = WardlineConfig(**kwargs)

        if config.mode not in MODES:
            raise ConfigError(
                f"Unknown mode '{config.mode}', expected one of {', '.join(MODES)}",
                key="mode",
            )
        if config.unknown_guard_policy not in UNKNOWN_GUARD_POLICIES:
            raise ConfigError(
                f"Unknown guard policy '{config.unknown_guard_policy}', "
                f"expected one of {', '.join(UNKNOWN_GUARD_POLICIES)}",
                key="unknown_guard_policy",
            )
        return config

    def _check_type(self, value: Any, expected_type: Any) -> bool:
        """Basic type checking."""
        origin = get_origin(expected_type)
        if origin is types.UnionType or str(origin) == "typing.Union":
            if value is None:
                return True
            args = [a for a in get_args(expected_type) if a is not type(None)]
            return any(self._check_type(value, a) for a in args)

        if origin is list:
            (item_type,) = get_args(expected_type) or (object,)
            return isinstance(value, list) and all(isinstance(v, item_type) for v in value)

        if expected_type is int:
            return isinstance(value, int) and not isinstance(value, bool)
        return isinstance(value, expected_type)
