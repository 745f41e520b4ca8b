"""
Configuration loading and management for the trade ledger.

This module handles loading reconciliation settings from YAML files,
environment overrides, and validation of configuration parameters.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from tradeledger.models import ChargeSchedule, LedgerConfig


# Default paths for configuration files
PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"

ENV_MAX_ROWS = "TRADELEDGER_MAX_ROWS"
ENV_DEFAULT_SEGMENT = "TRADELEDGER_DEFAULT_SEGMENT"
ENV_REQUIRE_FULL_CONFIDENCE = "TRADELEDGER_REQUIRE_FULL_CONFIDENCE"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


def load_ledger_config(config_path: str | Path) -> LedgerConfig:
    """
    Load reconciliation configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        LedgerConfig object with validated settings

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError("Configuration file must contain a mapping")

    return _parse_ledger_config(raw_config)


def _parse_ledger_config(raw: dict[str, Any]) -> LedgerConfig:
    """
    Parse and validate raw configuration dictionary into LedgerConfig.

    Every field is optional; missing ones take the LedgerConfig defaults.

    Raises:
        ConfigurationError: If a field is invalid
    """
    account_id = str(raw.get("account_id", "default"))
    if not account_id:
        raise ConfigurationError("account_id cannot be empty")

    charges = _parse_charges(raw.get("charges") or {})

    max_rows = _parse_max_rows(raw.get("max_rows"))

    require_full_confidence = _parse_bool(
        raw.get("require_full_confidence", False),
        "require_full_confidence",
    )

    default_segment = str(raw.get("default_segment", "NSE")).strip().upper()
    if not default_segment:
        raise ConfigurationError("default_segment cannot be empty")

    output_dir = str(raw.get("output_dir", "output"))

    return LedgerConfig(
        account_id=account_id,
        charges=charges,
        max_rows=max_rows,
        require_full_confidence=require_full_confidence,
        default_segment=default_segment,
        output_dir=output_dir,
    )


def _parse_charges(raw: Any) -> ChargeSchedule:
    """Parse the nested charges section."""
    if not isinstance(raw, dict):
        raise ConfigurationError("charges must be a mapping of rate names to values")

    defaults = ChargeSchedule()
    unknown = set(raw) - set(defaults.__dataclass_fields__)
    if unknown:
        raise ConfigurationError(f"Unknown charge settings: {sorted(unknown)}")

    rates = {}
    for name in ("brokerage_rate", "stt_rate", "exchange_txn_rate",
                 "gst_rate", "stamp_duty_rate"):
        rates[name] = _parse_decimal(
            raw.get(name, getattr(defaults, name)),
            f"charges.{name}",
            min_val=Decimal("0"),
            max_val=Decimal("1"),
        )

    rates["brokerage_cap"] = _parse_decimal(
        raw.get("brokerage_cap", defaults.brokerage_cap),
        "charges.brokerage_cap",
        min_val=Decimal("0"),
    )

    return ChargeSchedule(**rates)


def _parse_max_rows(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        max_rows = int(str(value))
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for max_rows: {value}")
    if max_rows <= 0:
        raise ConfigurationError(f"max_rows must be positive, got {max_rows}")
    return max_rows


def _parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean value for {field_name}: {value}")


def _parse_decimal(
    value: Any,
    field_name: str,
    min_val: Decimal | None = None,
    max_val: Decimal | None = None,
) -> Decimal:
    """
    Parse a decimal value with optional range validation.

    Args:
        value: The value to parse
        field_name: Name of the field for error messages
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)

    Returns:
        Parsed Decimal

    Raises:
        ConfigurationError: If the value is invalid or out of range
    """
    try:
        decimal_value = Decimal(str(value))
    except Exception:
        raise ConfigurationError(f"Invalid decimal value for {field_name}: {value}")

    if not decimal_value.is_finite():
        raise ConfigurationError(f"Invalid decimal value for {field_name}: {value}")

    if min_val is not None and decimal_value < min_val:
        raise ConfigurationError(
            f"{field_name} must be >= {min_val}, got {decimal_value}"
        )

    if max_val is not None and decimal_value > max_val:
        raise ConfigurationError(
            f"{field_name} must be <= {max_val}, got {decimal_value}"
        )

    return decimal_value


def apply_env_overrides(
    config: LedgerConfig,
    env_file: str | Path | None = None,
) -> LedgerConfig:
    """
    Apply overrides from a .env file and the process environment.

    Sources are checked in this order (later sources override earlier):
    1. .env file (defaults to project root .env)
    2. Environment variables

    Recognized keys: TRADELEDGER_MAX_ROWS, TRADELEDGER_DEFAULT_SEGMENT,
    TRADELEDGER_REQUIRE_FULL_CONFIDENCE.

    Args:
        config: Configuration to start from (modified in place)
        env_file: Path to .env file

    Returns:
        The same config, for chaining

    Raises:
        ConfigurationError: If an override value is invalid
    """
    overrides: dict[str, str] = {}

    env_path = Path(env_file) if env_file else DEFAULT_ENV_FILE
    if env_path.exists():
        for key, value in dotenv_values(env_path).items():
            if value is not None:
                overrides[key] = value

    for key in (ENV_MAX_ROWS, ENV_DEFAULT_SEGMENT, ENV_REQUIRE_FULL_CONFIDENCE):
        if os.environ.get(key):
            overrides[key] = os.environ[key]

    if overrides.get(ENV_MAX_ROWS):
        config.max_rows = _parse_max_rows(overrides[ENV_MAX_ROWS])

    if overrides.get(ENV_DEFAULT_SEGMENT):
        config.default_segment = overrides[ENV_DEFAULT_SEGMENT].strip().upper()

    if overrides.get(ENV_REQUIRE_FULL_CONFIDENCE):
        config.require_full_confidence = _parse_bool(
            overrides[ENV_REQUIRE_FULL_CONFIDENCE],
            ENV_REQUIRE_FULL_CONFIDENCE,
        )

    return config


def create_default_config(
    account_id: str = "default",
    output_path: str | Path | None = None,
) -> LedgerConfig:
    """
    Create a ledger config with default parameters.

    Useful for programmatic configuration without a YAML file.

    Args:
        account_id: Account identifier
        output_path: Optional path to write config YAML

    Returns:
        LedgerConfig with default charge rates
    """
    config = LedgerConfig(account_id=account_id)

    if output_path:
        write_config(config, output_path)

    return config


def write_config(config: LedgerConfig, output_path: str | Path) -> None:
    """
    Write a LedgerConfig to a YAML file.

    Args:
        config: The configuration to write
        output_path: Path to write the YAML file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    charges = config.charges
    config_dict = {
        "account_id": config.account_id,
        "max_rows": config.max_rows,
        "require_full_confidence": config.require_full_confidence,
        "default_segment": config.default_segment,
        "output_dir": config.output_dir,
        "charges": {
            "brokerage_rate": str(charges.brokerage_rate),
            "brokerage_cap": str(charges.brokerage_cap),
            "stt_rate": str(charges.stt_rate),
            "exchange_txn_rate": str(charges.exchange_txn_rate),
            "gst_rate": str(charges.gst_rate),
            "stamp_duty_rate": str(charges.stamp_duty_rate),
        },
    }

    with open(output_path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
