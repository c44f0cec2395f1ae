"""HTTP transport backends."""

from typing import Union

from ..constants import TransportBackend
from .aiohttp_transport import AiohttpTransport
from .httpx_transport import HttpxTransport
from .interface import Transport, serialize_params
from .mock import MockTransport


def create_transport(
    backend: Union[TransportBackend, str],
    user_agent: str,
    timeout: float = 30.0,
) -> Transport:
    """
    Build the transport for the selected backend.

    Args:
        backend: "httpx" or "aiohttp"
        user_agent: User-Agent header value
        timeout: Per-call timeout in seconds

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = TransportBackend(backend)
    if backend is TransportBackend.AIOHTTP:
        return AiohttpTransport(user_agent=user_agent, timeout=timeout)
    return HttpxTransport(user_agent=user_agent, timeout=timeout)


__all__ = [
    "AiohttpTransport",
    "HttpxTransport",
    "MockTransport",
    "Transport",
    "create_transport",
    "serialize_params",
]
