"""Transport backed by an httpx.AsyncClient."""

import logging
from typing import Optional

import httpx

from ..constants import HttpMethod
from ..errors import TransportError
from .interface import FORM_CONTENT_TYPE, Transport

logger = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """
    Sends calls with httpx.

    The client keeps cookies between calls, so a login session carries over
    to later requests made through the same transport.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the transport.

        Args:
            user_agent: Value of the User-Agent header
            timeout: Per-call timeout in seconds
            client: Pre-built client (one is created if omitted)
        """
        super().__init__(user_agent, timeout)
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def _send(self, method: HttpMethod, endpoint: str, payload: str) -> str:
        try:
            if method is HttpMethod.POST:
                response = await self.client.post(
                    endpoint,
                    content=payload,
                    headers={**self.headers, "Content-Type": FORM_CONTENT_TYPE},
                )
            else:
                response = await self.client.get(f"{endpoint}?{payload}", headers=self.headers)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {endpoint} timed out", cause=e) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {endpoint} failed: {e}", cause=e) from e

        if not response.is_success:
            raise TransportError(
                f"HTTP {response.status_code} from {endpoint}",
                status_code=response.status_code,
            )

        logger.debug(f"{method.value} {endpoint} -> {response.status_code}")
        return response.text

    async def close(self) -> None:
        """Close HTTP client connection pool."""
        await self.client.aclose()
        logger.debug("HttpxTransport closed")
