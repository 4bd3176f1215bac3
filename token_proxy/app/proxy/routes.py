"""
Proxy Routes - Upstream Request Forwarding
==========================================

This module implements the catch-all endpoint that forwards every inbound
request to the configured upstream with an Entra ID bearer token attached.

Security Model:
---------------
1. If EXPECTED_KEY is set, callers must send it in `api-key` or `x-api-key`
2. Both key headers are stripped before anything else happens
3. The inbound Authorization header is dropped and replaced with
   `Bearer <token>` from the token cache
4. Token errors are logged server-side; clients only see a generic message

Flow:
-----
Received -> Authenticated -> TokenAcquired -> UpstreamDispatched -> Relaying

Early exits: 401 (key), 500 (token or request build), 502 (transport).
Upstream 4xx/5xx responses are relayed like any other response.

The endpoint is a plain ASGI callable mounted on a Starlette Route with no
method list, so extension methods (PROPFIND, REPORT, ...) are forwarded too.
"""

import logging
from typing import AsyncIterator

import httpx
from fastapi import Request
from fastapi.responses import StreamingResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from ..auth.api_key import strip_api_keys, verify_api_key
from ..errors import UpstreamRequestError, UpstreamTransportError
from .forwarding import build_upstream_url, filter_headers, has_body

logger = logging.getLogger(__name__)


async def open_upstream(request: Request) -> httpx.Response:
    """
    Authenticate, fetch a token and dispatch the request upstream.

    Returns:
        Upstream response with its body still unread; the caller closes it

    Raises:
        AuthenticationError: Shared secret missing or wrong (401)
        TokenAcquisitionError: Identity provider failed (500)
        UpstreamRequestError: Upstream URL could not be built (500)
        UpstreamTransportError: Upstream unreachable (502)
    """
    state = request.app.state.app_state
    settings = state.settings

    query = request.scope.get("query_string", b"")
    raw_path = (request.scope.get("raw_path") or request.url.path.encode("utf-8")).split(b"?", 1)[0]
    peer = f"{request.client.host}:{request.client.port}" if request.client else "unknown"
    logger.info(
        f"{request.method} {request.url.path}{'?' + query.decode('latin-1') if query else ''} from {peer}"
    )

    verify_api_key(request.headers, settings.EXPECTED_KEY)
    inbound_headers = strip_api_keys(request.headers.raw)

    token = await state.token_cache.acquire()

    outbound_headers = filter_headers(inbound_headers)
    outbound_headers.append((b"authorization", f"Bearer {token}".encode("latin-1")))

    upstream_client: httpx.AsyncClient = state.upstream_client
    try:
        url = build_upstream_url(settings.target_url, raw_path, query)
        upstream_request = upstream_client.build_request(
            request.method,
            url,
            headers=outbound_headers,
            content=request.stream() if has_body(request.headers) else None,
        )
    except (httpx.InvalidURL, ValueError) as e:
        raise UpstreamRequestError(f"{type(e).__name__}: {e}") from e

    try:
        return await upstream_client.send(upstream_request, stream=True)
    except httpx.RequestError as e:
        raise UpstreamTransportError(f"{type(e).__name__}: {e}") from e


async def relay_body(upstream: httpx.Response, path: str) -> AsyncIterator[bytes]:
    """Yield raw upstream chunks as they arrive."""
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    except httpx.HTTPError as e:
        # Status line is already out; dropping the connection is all we can do
        logger.warning(f"Upstream stream interrupted for {path}: {type(e).__name__}")
        raise


class ProxyEndpoint:
    """ASGI endpoint forwarding one request and streaming the response back."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        upstream = await open_upstream(request)
        try:
            response = StreamingResponse(
                relay_body(upstream, request.url.path),
                status_code=upstream.status_code,
            )
            response.raw_headers = filter_headers(upstream.headers.raw)
            await response(scope, receive, send)
        finally:
            # Covers normal completion, cancellation and client disconnects
            await upstream.aclose()


proxy_route = Route("/{path:path}", endpoint=ProxyEndpoint(), include_in_schema=False)
