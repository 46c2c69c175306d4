"""
credproof Configuration System

Unified configuration management with YAML files, environment variables,
validation, and runtime updates.

Configuration supplies defaults to the proving workflow, the verification
gate and the CLI. The relation itself never reads it: minimum age, required
citizenship and issuer keys are public inputs of every proof.

Configuration Sources (in order of precedence):
    1. Environment variables (CREDPROOF_*)
    2. Runtime overrides
    3. User config file (~/.credproof/config.yaml)
    4. Project config file (./credproof.yaml)
    5. Default values

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

from credproof.gadgets import MAX_AGE_COMPARATOR_BITS

T = TypeVar("T")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


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
    _callbacks: List[Callable[[T, T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if isinstance(value, str) and not isinstance(self.default, str):
            value = self._coerce(value)
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value}")

        old_value = self._value
        self._value = value

        for callback in self._callbacks:
            callback(old_value, value)

    def reset(self) -> None:
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            return int(value)  # type: ignore
        elif target_type == float:
            return float(value)  # type: ignore
        else:
            return value  # type: ignore

    def on_change(self, callback: Callable[[T, T], None]) -> None:
        self._callbacks.append(callback)


@dataclass
class RelationConfig:
    """Shape of the relation built by the prover."""
    hardened: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=False,
        env_var="CREDPROOF_RELATION_HARDENED",
        description="Add remainder range check and birth/current ordering assertion",
    ))
    comparator_bits: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=64,
        env_var="CREDPROOF_RELATION_COMPARATOR_BITS",
        description="Bit width of the ordering comparators",
        validator=lambda x: 1 <= x <= MAX_AGE_COMPARATOR_BITS,
    ))


@dataclass
class PolicyConfig:
    """Verification policy defaults (become public inputs per proof)."""
    min_age: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=18,
        env_var="CREDPROOF_POLICY_MIN_AGE",
        description="Minimum age in whole years",
        validator=lambda x: 0 <= x < 200,
    ))
    required_citizenship: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="US",
        env_var="CREDPROOF_POLICY_CITIZENSHIP",
        description="Required ASCII country code",
        validator=lambda x: isinstance(x, str) and x.isalpha() and 2 <= len(x) <= 3,
    ))
    max_proof_age_seconds: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=3600,
        env_var="CREDPROOF_POLICY_MAX_PROOF_AGE",
        description="Accepted distance between a proof's current_date and gate time",
        validator=lambda x: x > 0,
    ))


@dataclass
class ProverConfig:
    """Proving workflow settings."""
    proof_system: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="groth16",
        env_var="CREDPROOF_PROOF_SYSTEM",
        description="Proof system label (groth16, plonk)",
        validator=lambda x: x in ("groth16", "plonk"),
    ))
    max_workers: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=4,
        env_var="CREDPROOF_PROVER_WORKERS",
        description="Worker threads for batch proving",
        validator=lambda x: 0 < x <= 64,
    ))
    setup_seed: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="credproof-dev-setup",
        env_var="CREDPROOF_SETUP_SEED",
        description="Seed for the mock key ceremony (same seed, same key pair)",
        validator=lambda x: isinstance(x, str) and len(x) > 0,
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for Observability."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="CREDPROOF_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="CREDPROOF_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class CredProofConfig:
    """Root configuration."""
    relation: RelationConfig = field(default_factory=RelationConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    prover: ProverConfig = field(default_factory=ProverConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False)


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

        self._config = CredProofConfig()
        self._config_paths: List[Path] = []
        self._initialized = True

    @property
    def config(self) -> CredProofConfig:
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        if data:
            if not isinstance(data, dict):
                raise ConfigError(f"Configuration file must hold a mapping: {path}")
            self._apply_dict(data)
            self._config_paths.append(path)

    def load_defaults(self) -> List[Path]:
        """Load default configuration files if they exist; return the ones loaded."""
        default_paths = [
            Path("credproof.yaml"),
            Path("config/credproof.yaml"),
            Path.home() / ".credproof" / "config.yaml",
        ]

        loaded = []
        for path in default_paths:
            if path.exists():
                self.load_from_file(path)
                loaded.append(path)
        return loaded

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                if not hasattr(config_obj, key):
                    raise ConfigError(f"Unknown config key: {prefix}{key}")
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{prefix}{key}.")

        apply_to_config(self._config, data, "")

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("policy.min_age", 21)
        """
        attr = self._resolve(path)
        if isinstance(attr, ConfigValue):
            attr.set(value)
        else:
            raise ConfigError(f"Invalid config path: {path}")

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("relation.comparator_bits")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def reset(self) -> None:
        """Drop runtime overrides and loaded files, back to defaults."""
        self._config = CredProofConfig()
        self._config_paths = []

    def reload(self) -> None:
        for path in list(self._config_paths):
            if path.exists():
                self.load_from_file(path)

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value}")
                except (TypeError, ValueError) as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Export configuration schema for documentation."""
        schema: Dict[str, Any] = {"properties": {}}

        def extract_schema(obj: Any, properties: Dict[str, Any]) -> None:
            if isinstance(obj, ConfigValue):
                properties["type"] = type(obj.default).__name__
                properties["default"] = str(obj.default)
                properties["description"] = obj.description
                if obj.env_var:
                    properties["env_var"] = obj.env_var
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    properties[field_name] = {}
                    extract_schema(getattr(obj, field_name), properties[field_name])

        extract_schema(self._config, schema["properties"])
        return schema


def get_config() -> CredProofConfig:
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    return ConfigManager()
