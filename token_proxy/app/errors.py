"""
Proxy error taxonomy.

Each error maps to the synthetic status code returned to the client. The
message is the only text the client sees; details stay in the server log.
Upstream 4xx/5xx responses are relayed as-is and never become errors here.
"""

from fastapi import status


class ProxyError(Exception):
    """Base class for failures that end a single proxied request."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "internal error"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.message)
        self.detail = detail


class AuthenticationError(ProxyError):
    """Missing or mismatched shared secret."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "unauthorized"


class TokenAcquisitionError(ProxyError):
    """The identity provider did not hand out a token."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "token acquisition failed"


class UpstreamRequestError(ProxyError):
    """The upstream request could not be built (bad URL or method)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "bad upstream request"


class UpstreamTransportError(ProxyError):
    """Connection refused, DNS failure or timeout talking to the upstream."""

    status_code = status.HTTP_502_BAD_GATEWAY
    message = "upstream error"
