"""
Request/response rewriting helpers for the forwarding handler.
"""

from typing import List, Mapping, Tuple

import httpx

RawHeaders = List[Tuple[bytes, bytes]]

# Never copied in either direction: Host would collide with the upstream
# host, Authorization is replaced by the bearer token.
EXCLUDED_HEADERS = frozenset({b"host", b"authorization"})

# RFC 9110 hop-by-hop headers; framing is owned by the client and server
HOP_BY_HOP_HEADERS = frozenset({
    b"connection",
    b"keep-alive",
    b"proxy-authenticate",
    b"proxy-authorization",
    b"te",
    b"trailer",
    b"transfer-encoding",
    b"upgrade",
})

_DROPPED_HEADERS = EXCLUDED_HEADERS | HOP_BY_HOP_HEADERS


def single_joining_slash(a: str, b: str) -> str:
    """
    Join two URL paths with exactly one slash at the junction.

    >>> single_joining_slash("/v1/", "/chat")
    '/v1/chat'
    >>> single_joining_slash("/v1", "chat")
    '/v1/chat'
    """
    a_slash = a.endswith("/")
    b_slash = b.startswith("/")
    if a_slash and b_slash:
        return a + b[1:]
    if a_slash or b_slash:
        return a + b
    return a + "/" + b


def filter_headers(raw_headers: RawHeaders) -> RawHeaders:
    """Copy a raw header list minus Host, Authorization and hop-by-hop headers."""
    return [
        (name, value)
        for name, value in raw_headers
        if name.lower() not in _DROPPED_HEADERS
    ]


def build_upstream_url(target: httpx.URL, raw_path: bytes, query: bytes) -> httpx.URL:
    """
    Point the inbound path and query at the upstream.

    Args:
        target: Upstream base URL; its own query string is discarded
        raw_path: Percent-encoded inbound path
        query: Raw inbound query string, forwarded verbatim

    Raises:
        httpx.InvalidURL, ValueError: If the result is not a valid URL
    """
    base_path = target.raw_path.split(b"?", 1)[0].decode("ascii")
    path = single_joining_slash(base_path, raw_path.decode("ascii"))
    return target.copy_with(path=path, query=query or None)


def has_body(headers: Mapping[str, str]) -> bool:
    """Whether the inbound request declares a body."""
    return "content-length" in headers or "transfer-encoding" in headers
