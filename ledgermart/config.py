"""
LEDGERMART Configuration System

Layered configuration with YAML files, environment variables, validation,
and runtime overrides.

Configuration Sources (in order of precedence):
    1. Environment variables (LEDGERMART_*)
    2. Runtime overrides
    3. User config file (~/.ledgermart/config.yaml)
    4. Project config file (./ledgermart.yaml)
    5. Default values

Configuration seeds the administrative parameters of a newly deployed
marketplace. Once deployed, those parameters change only through the
administrator-gated operations.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml
from jsonschema import Draft202012Validator

from ledgermart.core import load_yaml

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Basis points are expressed out of 1000 (1000 = 100%). Not configurable.
FEE_DENOMINATOR = 1000


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "ledgermart configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "market": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "platform_fee_bps": {"type": "integer", "minimum": 0, "maximum": FEE_DENOMINATOR},
                "max_metadata_length": {"type": "integer", "minimum": 1},
            },
        },
        "observability": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "log_level": {"enum": ["debug", "info", "warning", "error", "critical"]},
                "log_format": {"enum": ["json", "text"]},
                "audit_enabled": {"type": "boolean"},
            },
        },
    },
}


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding,
    validation, and change callbacks.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[Optional[T], T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])

        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value!r}")

        old_value = self._value
        self._value = value

        for callback in self._callbacks:
            callback(old_value, value)

    def reset(self) -> None:
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        try:
            if target_type == bool:
                return value.lower() in ("true", "1", "yes", "on")  # type: ignore
            elif target_type == int:
                return int(value)  # type: ignore
        except ValueError as e:
            raise ConfigValidationError(f"{self.env_var}: cannot parse {value!r}") from e
        return value  # type: ignore

    def on_change(self, callback: Callable[[Optional[T], T], None]) -> None:
        """Register a change callback."""
        self._callbacks.append(callback)


def _is_int(x: Any) -> bool:
    return isinstance(x, int) and not isinstance(x, bool)


@dataclass
class MarketConfig:
    """Initial marketplace parameters."""
    platform_fee_bps: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=25,
        env_var="LEDGERMART_PLATFORM_FEE_BPS",
        description="Platform fee in basis points out of 1000 (25 = 2.5%)",
        validator=lambda x: _is_int(x) and 0 <= x <= FEE_DENOMINATOR,
    ))
    max_metadata_length: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=256,
        env_var="LEDGERMART_MAX_METADATA_LENGTH",
        description="Maximum asset metadata length in characters",
        validator=lambda x: _is_int(x) and x >= 1,
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for logging and audit."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="LEDGERMART_LOG_LEVEL",
        description="Log level (debug, info, warning, error, critical)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="LEDGERMART_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))
    audit_enabled: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="LEDGERMART_AUDIT_ENABLED",
        description="Record a hash-chained audit entry per mutating operation",
    ))


@dataclass
class LedgerMartConfig:
    """
    Root configuration for LEDGERMART.

    Aggregates all section configurations and provides export helpers.
    """
    market: MarketConfig = field(default_factory=MarketConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False)


def validate_config_document(data: Any) -> List[str]:
    """Validate a raw configuration document against CONFIG_SCHEMA."""
    validator = Draft202012Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    return [
        f"{'.'.join(str(p) for p in e.path) or '<root>'}: {e.message}"
        for e in errors
    ]


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = LedgerMartConfig()
        self._config_paths: List[Path] = []
        self._watchers: List[Callable[[LedgerMartConfig], None]] = []
        self._initialized = True

    @property
    def config(self) -> LedgerMartConfig:
        """Get the current configuration."""
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        data = load_yaml(path)

        if data:
            self.apply_dict(data, source=str(path))
        if path not in self._config_paths:
            self._config_paths.append(path)

    def load_defaults(self) -> List[Path]:
        """Load default configuration files if they exist. Returns the files loaded."""
        default_paths = [
            Path.home() / ".ledgermart" / "config.yaml",
            Path("config/ledgermart.yaml"),
            Path("ledgermart.yaml"),
        ]

        loaded: List[Path] = []
        for path in default_paths:
            if path.exists():
                self.load_from_file(path)
                loaded.append(path)
        return loaded

    def apply_dict(self, data: Dict[str, Any], source: str = "<dict>") -> None:
        """Validate a configuration document and apply its values."""
        errors = validate_config_document(data)
        if errors:
            raise ConfigValidationError(f"invalid configuration in {source}: {errors[0]}")

        def apply_to_config(config_obj: Any, values: Dict[str, Any]) -> None:
            for key, value in values.items():
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value)

        apply_to_config(self._config, data)
        logger.debug("applied configuration from %s", source)

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("market.platform_fee_bps", 50)
        """
        parts = path.split(".")
        obj: Any = self._config

        try:
            for part in parts[:-1]:
                obj = getattr(obj, part)
            attr = getattr(obj, parts[-1])
        except AttributeError as e:
            raise ConfigError(f"Invalid config path: {path}") from e

        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("market.max_metadata_length")
        """
        obj: Any = self._config
        try:
            for part in path.split("."):
                obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigError(f"Invalid config path: {path}") from e

        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def watch(self, callback: Callable[[LedgerMartConfig], None]) -> None:
        """Register a callback for configuration reloads."""
        self._watchers.append(callback)

    def reload(self) -> None:
        """Reload configuration from all loaded files."""
        for path in self._config_paths:
            if path.exists():
                self.load_from_file(path)

        for watcher in self._watchers:
            watcher(self._config)

    def reset(self) -> None:
        """Drop overrides and loaded files, returning to defaults."""
        self._config = LedgerMartConfig()
        self._config_paths = []

    def validate(self) -> List[str]:
        """
        Validate all configuration values, including environment overrides.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value!r}")
                except ConfigError as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors


def get_config() -> LedgerMartConfig:
    """Get the current LEDGERMART configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()
