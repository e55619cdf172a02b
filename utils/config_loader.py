"""
Config Loader for the Resource Contention & Deadlock Simulator.

Loads and validates JSON run configuration files.
"""

import json
from dataclasses import fields, replace
from typing import Dict, Any

from models.config import (
    ConfigurationError,
    LockingPolicy,
    SimulationConfig,
    TerminationMode,
)


class ConfigLoadError(ConfigurationError):
    """Exception raised when a config file cannot be loaded or is invalid."""
    pass


_INT_FIELDS = {
    'population', 'pool_size', 'required_per_task', 'max_wait_time',
    'backoff_range', 'deadlock_check_interval', 'max_steps', 'service_time',
    'incremental_claims_per_step',
}


def load_config(file_path: str) -> SimulationConfig:
    """
    Load a run configuration from a JSON file.

    Missing keys keep their defaults. The result is validated before it is
    returned.

    Args:
        file_path: Path to config JSON file

    Returns:
        Validated SimulationConfig

    Raises:
        ConfigLoadError: If file cannot be loaded or has invalid fields
        ConfigurationError: If the parameters are invalid as a whole
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigLoadError(f"Config file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"Invalid JSON in config file: {e}")

    if not isinstance(data, dict):
        raise ConfigLoadError("Config file must contain a JSON object")

    config = config_from_dict(data)
    config.validate()
    return config


def config_from_dict(data: Dict[str, Any], base: SimulationConfig = None) -> SimulationConfig:
    """
    Build a config from a dictionary of overrides.

    Args:
        data: Field values (enum fields given by their string value);
            a 'description' key is accepted and ignored
        base: Config supplying defaults for missing fields

    Returns:
        SimulationConfig (not yet validated)

    Raises:
        ConfigLoadError: On unknown keys, wrong types or unknown enum values
    """
    if base is None:
        base = SimulationConfig()

    known = {f.name for f in fields(SimulationConfig)}
    overrides = {}

    for key, value in data.items():
        if key == 'description':
            continue
        if key not in known:
            raise ConfigLoadError(f"Unknown config field: '{key}'")
        overrides[key] = _parse_field(key, value)

    return replace(base, **overrides)


def _parse_field(key: str, value: Any) -> Any:
    """
    Convert a raw JSON value for a config field.

    Raises:
        ConfigLoadError: If the value has the wrong type
    """
    if key == 'policy':
        return _parse_enum(LockingPolicy, key, value)
    if key == 'termination':
        return _parse_enum(TerminationMode, key, value)
    if key == 'detection_enabled':
        if not isinstance(value, bool):
            raise ConfigLoadError(f"'{key}' must be true or false")
        return value
    if key == 'stall_wait_threshold':
        if value is None:
            return None
        return _parse_int(key, value)
    if key in _INT_FIELDS:
        return _parse_int(key, value)
    return value


def _parse_int(key: str, value: Any) -> int:
    # bool is a subclass of int; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigLoadError(f"'{key}' must be an integer (got {value!r})")
    return value


def _parse_enum(enum_cls, key: str, value: Any):
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigLoadError(f"'{key}' must be one of: {choices} (got {value!r})")


def get_config_description(file_path: str) -> str:
    """
    Get description from config file without full loading.

    Args:
        file_path: Path to config JSON file

    Returns:
        Description string, or empty string if not present or unreadable
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return ''
    if not isinstance(data, dict):
        return ''
    return data.get('description', '')
