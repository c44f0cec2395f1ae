"""Shared configuration utilities and constants.

Values are resolved with the same priority everywhere:
CLI argument > environment variable > default.
"""

import os
from typing import Any, Optional, TypeVar

T = TypeVar("T")

ENV_PREFIX = "MEDIAWIKI_"


class EnvVars:
    """Centralized environment variable names for consistent access."""

    # === Client ===
    ENDPOINT = f"{ENV_PREFIX}ENDPOINT"
    MIN_INTERVAL_MILLIS = f"{ENV_PREFIX}MIN_INTERVAL_MILLIS"
    USER_AGENT = f"{ENV_PREFIX}USER_AGENT"
    BYELINE = f"{ENV_PREFIX}BYELINE"
    TIMEOUT = f"{ENV_PREFIX}TIMEOUT"
    TRANSPORT = f"{ENV_PREFIX}TRANSPORT"

    # === Credentials ===
    USERNAME = f"{ENV_PREFIX}USERNAME"
    PASSWORD = f"{ENV_PREFIX}PASSWORD"

    # === Logging ===
    LOG_LEVEL = f"{ENV_PREFIX}LOG_LEVEL"
    LOG_FORMAT = f"{ENV_PREFIX}LOG_FORMAT"


def get_env_value(
    env_var: str,
    default: T,
    type_converter: type = str,
) -> T:
    """
    Get a value from an environment variable with type conversion.

    Args:
        env_var: Environment variable name
        default: Default value if not set
        type_converter: Type to convert to (str, int, float, bool)

    Returns:
        The environment value converted to the specified type, or the default

    Raises:
        ValueError: If the variable is set but cannot be converted
    """
    env_value = os.getenv(env_var)
    if env_value is None or env_value == "":
        return default

    if type_converter == bool:
        return env_value.lower() in ("true", "1", "yes", "on")  # type: ignore
    try:
        return type_converter(env_value)
    except ValueError as e:
        raise ValueError(f"Invalid value for {env_var}: {env_value!r}") from e


def get_config_value(
    cli_arg: Optional[Any],
    env_var: str,
    default: T,
    type_converter: type = str,
) -> T:
    """
    Get a configuration value with priority: CLI > Environment > Default.

    Args:
        cli_arg: CLI argument value (highest priority, ignored when None)
        env_var: Environment variable name
        default: Default value (lowest priority)
        type_converter: Type to convert to (str, int, float, bool)

    Returns:
        The resolved configuration value
    """
    if cli_arg is not None:
        return cli_arg
    return get_env_value(env_var, default, type_converter)
