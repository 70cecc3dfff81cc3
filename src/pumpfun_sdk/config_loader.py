"""
SDK configuration loading and validation.

Configuration is a YAML file. ``${VAR}`` values are resolved from the
environment, optionally seeded from the ``env_file`` the YAML names.
"""

import os
from dataclasses import dataclass, field
from typing import Any

import yaml
from dotenv import load_dotenv

from pumpfun_sdk.core.errors import ConfigurationError
from pumpfun_sdk.core.priority_fee import DEFAULT_COMPUTE_UNIT_LIMIT
from pumpfun_sdk.core.pubkeys import (
    BASIS_POINTS_DIVISOR,
    COMMITMENT_LEVELS,
    DEFAULT_COMMITMENT,
    DEFAULT_FINALITY,
)
from pumpfun_sdk.metadata.uploader import DEFAULT_METADATA_ENDPOINT
from pumpfun_sdk.platforms.pumpfun.slippage import DEFAULT_SLIPPAGE_BPS

REQUIRED_FIELDS = [
    "rpc_endpoint",
]

CONFIG_VALIDATION_RULES = [
    ("trade.slippage_bps", int, 0, BASIS_POINTS_DIVISOR, "trade.slippage_bps must be an integer between 0 and 10000"),
    ("priority_fees.fixed_amount", int, 0, float("inf"), "priority_fees.fixed_amount must be a non-negative integer"),
    ("priority_fees.extra_percentage", (int, float), 0, 1, "priority_fees.extra_percentage must be between 0 and 1"),
    ("priority_fees.hard_cap", int, 0, float("inf"), "priority_fees.hard_cap must be a non-negative integer"),
    ("priority_fees.unit_limit", int, 1, float("inf"), "priority_fees.unit_limit must be a positive integer"),
    ("transport.max_retries", int, 1, 100, "transport.max_retries must be between 1 and 100"),
]

# Valid values for enum-like fields
VALID_VALUES = {
    "commitment": list(COMMITMENT_LEVELS),
    "finality": ["confirmed", "finalized"],
}

_MISSING = object()


def load_sdk_config(path: str) -> dict:
    """Load and validate an SDK configuration from a YAML file.

    Raises:
        ConfigurationError: If the file is not a mapping, an environment
            variable is missing or a value is invalid
    """
    with open(path) as f:
        config = yaml.safe_load(f)

    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")

    env_file = config.get("env_file")
    if env_file:
        env_path = os.path.join(os.path.dirname(path), env_file)
        if os.path.exists(env_path):
            load_dotenv(env_path, override=True)
        else:
            load_dotenv(env_file, override=True)

    resolve_env_vars(config)
    validate_config(config)
    return config


def resolve_env_vars(config: dict) -> None:
    """Recursively resolve environment variables in the configuration."""

    def resolve_env(value):
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            env_var = value[2:-1]
            env_value = os.getenv(env_var)
            if env_value is None:
                raise ConfigurationError(f"Environment variable '{env_var}' not found")
            return env_value
        return value

    def resolve_all(d):
        for k, v in d.items():
            if isinstance(v, dict):
                resolve_all(v)
            else:
                d[k] = resolve_env(v)

    resolve_all(config)


def _lookup(config: dict, path: str) -> Any:
    value = config
    for key in path.split("."):
        if not isinstance(value, dict) or key not in value:
            return _MISSING
        value = value[key]
    return value


def get_nested_value(config: dict, path: str) -> Any:
    """Get a nested value from the configuration using dot notation.

    Raises:
        ConfigurationError: If the key is missing
    """
    value = _lookup(config, path)
    if value is _MISSING:
        raise ConfigurationError(f"Missing required config key: {path}")
    return value


def validate_config(config: dict) -> None:
    """Validate the configuration against the defined rules.

    Optional keys are only checked when present.

    Raises:
        ConfigurationError: On the first violated rule
    """
    for path in REQUIRED_FIELDS:
        get_nested_value(config, path)

    for path, expected_type, min_val, max_val, error_msg in CONFIG_VALIDATION_RULES:
        value = _lookup(config, path)
        if value is _MISSING:
            continue
        # bool is an int subclass but never a valid number here
        if isinstance(value, bool) or not isinstance(value, expected_type):
            raise ConfigurationError(f"Type error: {error_msg}")
        if not (min_val <= value <= max_val):
            raise ConfigurationError(f"Range error: {error_msg}")

    for path, valid_values in VALID_VALUES.items():
        value = _lookup(config, path)
        if value is not _MISSING and value not in valid_values:
            raise ConfigurationError(f"{path} must be one of {valid_values}")

    dynamic = _lookup(config, "priority_fees.enable_dynamic")
    fixed = _lookup(config, "priority_fees.enable_fixed")
    if dynamic is True and fixed is True:
        raise ConfigurationError(
            "Cannot enable both dynamic and fixed priority fees simultaneously"
        )


@dataclass
class PriorityFeeConfig:
    """Priority fee settings."""

    enable_dynamic: bool = False
    enable_fixed: bool = False
    fixed_amount: int = 0
    extra_percentage: float = 0.0
    hard_cap: int = 0
    unit_limit: int = DEFAULT_COMPUTE_UNIT_LIMIT

    @property
    def enabled(self) -> bool:
        return self.enable_dynamic or self.enable_fixed


@dataclass
class SDKConfig:
    """Typed SDK configuration."""

    rpc_endpoint: str
    wss_endpoint: str | None = None
    commitment: str = DEFAULT_COMMITMENT
    finality: str = DEFAULT_FINALITY
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    metadata_endpoint: str = DEFAULT_METADATA_ENDPOINT
    skip_preflight: bool = False
    max_retries: int = 3
    priority_fees: PriorityFeeConfig = field(default_factory=PriorityFeeConfig)

    @classmethod
    def from_dict(cls, config: dict) -> "SDKConfig":
        """Build a typed config from a raw (already resolved) mapping.

        Raises:
            ConfigurationError: If the mapping fails validation
        """
        validate_config(config)
        trade = config.get("trade") or {}
        transport = config.get("transport") or {}
        fees = config.get("priority_fees") or {}

        return cls(
            rpc_endpoint=config["rpc_endpoint"],
            wss_endpoint=config.get("wss_endpoint"),
            commitment=config.get("commitment", DEFAULT_COMMITMENT),
            finality=config.get("finality", DEFAULT_FINALITY),
            slippage_bps=trade.get("slippage_bps", DEFAULT_SLIPPAGE_BPS),
            metadata_endpoint=config.get("metadata_endpoint", DEFAULT_METADATA_ENDPOINT),
            skip_preflight=transport.get("skip_preflight", False),
            max_retries=transport.get("max_retries", 3),
            priority_fees=PriorityFeeConfig(
                enable_dynamic=fees.get("enable_dynamic", False),
                enable_fixed=fees.get("enable_fixed", False),
                fixed_amount=fees.get("fixed_amount", 0),
                extra_percentage=float(fees.get("extra_percentage", 0.0)),
                hard_cap=fees.get("hard_cap", 0),
                unit_limit=fees.get("unit_limit", DEFAULT_COMPUTE_UNIT_LIMIT),
            ),
        )

    @classmethod
    def load(cls, path: str) -> "SDKConfig":
        """Load, validate and type a YAML configuration file."""
        return cls.from_dict(load_sdk_config(path))
