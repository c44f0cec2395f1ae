"""Client settings."""

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from ..constants import (
    DEFAULT_BYELINE,
    DEFAULT_ENDPOINT,
    DEFAULT_MIN_INTERVAL_MILLIS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    TransportBackend,
)
from .base import EnvVars, get_config_value

# Accepted spellings for options that also have a camelCase form
_ALIASES = {
    "minIntervalMillis": "min_interval_millis",
    "userAgent": "user_agent",
    "timeoutSeconds": "timeout_seconds",
}


@dataclass(frozen=True)
class ClientSettings:
    """Settings of one client instance. Immutable once built."""

    endpoint: str = DEFAULT_ENDPOINT
    min_interval_millis: int = DEFAULT_MIN_INTERVAL_MILLIS
    user_agent: str = DEFAULT_USER_AGENT
    byeline: str = DEFAULT_BYELINE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    transport: str = TransportBackend.HTTPX.value

    def __post_init__(self) -> None:
        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError(f"endpoint must be an http(s) URL, got {self.endpoint!r}")
        if self.min_interval_millis < 0:
            raise ValueError("min_interval_millis must not be negative")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        # Normalizes and validates the backend name
        object.__setattr__(self, "transport", TransportBackend(self.transport).value)

    @property
    def min_interval_seconds(self) -> float:
        return self.min_interval_millis / 1000.0

    @classmethod
    def from_mapping(cls, config: Optional[Mapping[str, Any]] = None) -> "ClientSettings":
        """
        Build settings from a configuration mapping, defaults filling the gaps.

        Args:
            config: Any of endpoint, min_interval_millis, user_agent, byeline,
                timeout_seconds, transport (camelCase aliases accepted)

        Raises:
            ValueError: On unknown options or invalid values
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in (config or {}).items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown client option: {key}")
            values[name] = value
        return cls(**values)

    @classmethod
    def from_args_and_env(cls, cli_args: Optional[Mapping[str, Any]] = None) -> "ClientSettings":
        """
        Resolve settings with priority: CLI args > environment variables > defaults.

        Args:
            cli_args: Option values from the command line (None entries are ignored)
        """
        cli_args = cli_args or {}
        defaults = cls()
        return cls(
            endpoint=get_config_value(
                cli_args.get("endpoint"), EnvVars.ENDPOINT, defaults.endpoint
            ),
            min_interval_millis=get_config_value(
                cli_args.get("min_interval_millis"), EnvVars.MIN_INTERVAL_MILLIS,
                defaults.min_interval_millis, int
            ),
            user_agent=get_config_value(
                cli_args.get("user_agent"), EnvVars.USER_AGENT, defaults.user_agent
            ),
            byeline=get_config_value(
                cli_args.get("byeline"), EnvVars.BYELINE, defaults.byeline
            ),
            timeout_seconds=get_config_value(
                cli_args.get("timeout_seconds"), EnvVars.TIMEOUT, defaults.timeout_seconds, float
            ),
            transport=get_config_value(
                cli_args.get("transport"), EnvVars.TRANSPORT, defaults.transport
            ),
        )

    def display(self) -> str:
        """
        Display settings in human-readable format.

        Returns:
            Formatted settings string
        """
        lines = [
            "Client settings:",
            f"  Endpoint: {self.endpoint}",
            f"  Transport: {self.transport}",
            f"  Min Interval: {self.min_interval_millis} ms",
            f"  Timeout: {self.timeout_seconds}s",
            f"  User-Agent: {self.user_agent}",
            f"  Byeline: {self.byeline}",
        ]
        return "\n".join(lines)
