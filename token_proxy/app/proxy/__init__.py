"""
Proxy Package
=============

Forwards every inbound request to the fixed upstream with an Entra ID
bearer token attached and streams the response back.

Main Components:
----------------
- routes.py: catch-all ASGI endpoint accepting every method
- forwarding.py: path joining, URL rewriting and header filtering

Usage:
------
    from token_proxy.app.proxy import proxy_route
    app.router.routes.append(proxy_route)
"""

from .routes import ProxyEndpoint, proxy_route

__all__ = ["ProxyEndpoint", "proxy_route"]
