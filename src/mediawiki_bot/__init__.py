"""Rate-limited, priority-ordered asyncio client for the MediaWiki API."""

from .client import MediaWikiBot
from .config import ClientSettings
from .constants import VERSION as __version__
from .deferred import Deferred, DeferredState
from .errors import (
    APIError,
    DecodeError,
    MediaWikiError,
    QueueClosedError,
    RequestFailedError,
    TransportError,
)

__all__ = [
    "APIError",
    "ClientSettings",
    "DecodeError",
    "Deferred",
    "DeferredState",
    "MediaWikiBot",
    "MediaWikiError",
    "QueueClosedError",
    "RequestFailedError",
    "TransportError",
    "__version__",
]
