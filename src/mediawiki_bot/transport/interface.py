"""Abstract interface for HTTP transport backends."""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Union
from urllib.parse import quote

from ..constants import HttpMethod

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Left unescaped, as browsers do when encoding a URI component
_SAFE_CHARS = "-_.!~*'()"


def _encode_value(value: Any) -> str:
    if value is True:
        return "1"
    return str(value)


def serialize_params(parameters: Mapping[str, Any]) -> str:
    """
    Serialize API parameters as ``key=value`` pairs joined by ``&``.

    Keys and values are percent-encoded. ``True`` is sent as ``1``; ``False``
    and ``None`` values are left out, since the API treats any present
    boolean parameter as set.
    """
    pairs = []
    for key, value in parameters.items():
        if value is None or value is False:
            continue
        pairs.append(
            f"{quote(str(key), safe=_SAFE_CHARS)}={quote(_encode_value(value), safe=_SAFE_CHARS)}"
        )
    return "&".join(pairs)


class Transport(ABC):
    """
    Sends one API call and returns the raw response text.

    Subclasses implement :meth:`_send`. :meth:`send` always asks for JSON
    output and serializes parameters the same way for every backend.
    """

    def __init__(self, user_agent: str, timeout: float = 30.0):
        """
        Initialize the transport.

        Args:
            user_agent: Value of the User-Agent header sent with every call
            timeout: Per-call timeout in seconds
        """
        self.user_agent = user_agent
        self.timeout = timeout

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent}

    async def send(
        self,
        method: Union[HttpMethod, str],
        endpoint: str,
        parameters: Mapping[str, Any],
    ) -> str:
        """
        Send a call.

        Args:
            method: GET or POST
            endpoint: API URL
            parameters: API parameters (not modified)

        Returns:
            Raw response body

        Raises:
            TransportError: On a non-2xx status, connection failure or timeout
        """
        params = dict(parameters)
        params["format"] = "json"
        return await self._send(HttpMethod(method), endpoint, serialize_params(params))

    @abstractmethod
    async def _send(self, method: HttpMethod, endpoint: str, payload: str) -> str:
        """
        Perform the HTTP exchange.

        Args:
            method: GET (payload goes in the query string) or POST (form body)
            endpoint: API URL
            payload: Serialized parameters

        Returns:
            Raw response body
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""
        pass
