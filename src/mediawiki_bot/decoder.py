"""Decoding of raw API response bodies."""

import json
from typing import Any, Union

from .errors import APIError, DecodeError


def decode(raw_body: Union[str, bytes]) -> dict[str, Any]:
    """
    Parse a response body into a JSON object.

    Args:
        raw_body: Response text as returned by the transport

    Returns:
        The decoded object

    Raises:
        DecodeError: If the body is not JSON or its top level is not an object
    """
    try:
        data = json.loads(raw_body)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Malformed response body: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def raise_for_api_error(data: dict[str, Any]) -> dict[str, Any]:
    """
    Raise if the payload carries the wiki's own ``error`` object.

    Returns:
        The payload unchanged, for chaining

    Raises:
        APIError: With the error code and info text from the payload
    """
    error = data.get("error")
    if isinstance(error, dict):
        raise APIError(str(error.get("code", "unknown")), error.get("info"))
    return data
