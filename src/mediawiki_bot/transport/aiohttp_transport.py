"""Transport backed by an aiohttp.ClientSession."""

import asyncio
import logging
from typing import Optional

import aiohttp
from yarl import URL

from ..constants import HttpMethod
from ..errors import TransportError
from .interface import FORM_CONTENT_TYPE, Transport

logger = logging.getLogger(__name__)


class AiohttpTransport(Transport):
    """
    Sends calls with aiohttp.

    The session is created on first use, inside the running event loop. Its
    cookie jar keeps login cookies between calls.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the transport.

        Args:
            user_agent: Value of the User-Agent header
            timeout: Per-call timeout in seconds
            session: Pre-built session (one is created lazily if omitted)
        """
        super().__init__(user_agent, timeout)
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def _send(self, method: HttpMethod, endpoint: str, payload: str) -> str:
        session = self._get_session()
        if method is HttpMethod.POST:
            request = session.post(
                endpoint,
                data=payload,
                headers={**self.headers, "Content-Type": FORM_CONTENT_TYPE},
            )
        else:
            # Pre-encoded query string, so keep aiohttp from re-quoting it
            request = session.get(
                URL(f"{endpoint}?{payload}", encoded=True),
                headers=self.headers,
            )

        try:
            async with request as response:
                body = await response.text()
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request to {endpoint} timed out", cause=e) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Request to {endpoint} failed: {e}", cause=e) from e

        if not 200 <= response.status < 300:
            raise TransportError(
                f"HTTP {response.status} from {endpoint}",
                status_code=response.status,
            )

        logger.debug(f"{method.value} {endpoint} -> {response.status}")
        return body

    async def close(self) -> None:
        """Close the client session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        logger.debug("AiohttpTransport closed")
