"""Exception hierarchy for the MediaWiki client."""

from typing import Optional


class MediaWikiError(Exception):
    """Base class for all errors raised by this package."""

    pass


class RequestFailedError(MediaWikiError):
    """A request could not produce a usable response."""

    pass


class TransportError(RequestFailedError):
    """
    Raised when the HTTP exchange itself fails.

    Either the server answered with a non-2xx status (``status_code`` is set)
    or the connection failed or timed out (``cause`` is set).
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class DecodeError(RequestFailedError):
    """Raised when a response body is not a well-formed JSON object."""

    pass


class APIError(MediaWikiError):
    """The wiki answered, but its payload reports a failure."""

    def __init__(self, code: str, info: Optional[str] = None):
        message = f"{code}: {info}" if info else code
        super().__init__(message)
        self.code = code
        self.info = info


class QueueClosedError(MediaWikiError):
    """Raised when a request is enqueued on a closed dispatch queue."""

    pass
