"""Configuration module for the MediaWiki client.

Usage:
    from mediawiki_bot.config import ClientSettings
    from mediawiki_bot.config.base import EnvVars, get_config_value

All environment variables use the MEDIAWIKI_ prefix.
"""

from .base import ENV_PREFIX, EnvVars, get_config_value, get_env_value
from .settings import ClientSettings

__all__ = [
    "ClientSettings",
    "EnvVars",
    "get_config_value",
    "get_env_value",
    "ENV_PREFIX",
]
