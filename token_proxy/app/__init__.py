"""
Token Proxy Application
=======================

Reverse proxy that authenticates callers with an optional shared secret,
attaches an Entra ID bearer token and streams the upstream response back.

Packages:
- auth: shared-secret check for inbound callers
- identity: credential construction and the token cache
- proxy: catch-all forwarding route
"""

__version__ = "1.0.0"
