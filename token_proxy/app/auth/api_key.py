"""
Shared-secret authentication for inbound callers.

Clients present the key in either the `api-key` header (Azure OpenAI SDKs) or
`x-api-key`. Both slots are stripped before the request goes upstream.
"""

import hmac
from typing import List, Mapping, Optional, Tuple

from ..errors import AuthenticationError

API_KEY_HEADERS = ("api-key", "x-api-key")

_API_KEY_HEADERS_RAW = {name.encode("latin-1") for name in API_KEY_HEADERS}


def _matches(presented: Optional[str], expected: str) -> bool:
    if presented is None:
        return False
    # Starlette decodes header values as latin-1; this recovers the wire bytes
    return hmac.compare_digest(presented.encode("latin-1"), expected.encode("utf-8"))


def is_authorized(headers: Mapping[str, str], expected: Optional[str]) -> bool:
    """
    Check the shared secret.

    Args:
        headers: Case-insensitive request headers
        expected: Configured secret, or None when authentication is disabled

    Returns:
        True if no secret is configured or either slot matches exactly
    """
    if not expected:
        return True
    return any(_matches(headers.get(name), expected) for name in API_KEY_HEADERS)


def verify_api_key(headers: Mapping[str, str], expected: Optional[str]) -> None:
    """Raise AuthenticationError unless the caller presented the shared secret."""
    if not is_authorized(headers, expected):
        raise AuthenticationError("missing or invalid api key")


def strip_api_keys(raw_headers: List[Tuple[bytes, bytes]]) -> List[Tuple[bytes, bytes]]:
    """Drop both key slots from a raw ASGI header list."""
    return [
        (name, value)
        for name, value in raw_headers
        if name.lower() not in _API_KEY_HEADERS_RAW
    ]
