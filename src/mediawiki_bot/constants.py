"""Constants shared across the MediaWiki client."""

import platform
from enum import Enum

VERSION = "0.1.0"
HOMEPAGE = "https://github.com/mediawiki-bot/mediawiki-bot"

DEFAULT_ENDPOINT = "https://en.wikipedia.org/w/api.php"
# Ten calls per minute
DEFAULT_MIN_INTERVAL_MILLIS = 6000
DEFAULT_USER_AGENT = (
    f"mediawiki-bot/{VERSION}; Python/{platform.python_version()}; <{HOMEPAGE}>"
)
DEFAULT_BYELINE = "(using the mediawiki-bot Python package)"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Namespace of category pages
NS_CATEGORY = 14


class HttpMethod(str, Enum):
    """HTTP methods the wiki API is called with."""
    GET = "GET"
    POST = "POST"


class TransportBackend(str, Enum):
    """Available HTTP transport backends."""
    HTTPX = "httpx"
    AIOHTTP = "aiohttp"
