"""
Authentication Package

Checks the optional shared secret inbound callers must present before the
proxy spends a token on their request.

Modules:
- api_key: header slot matching and stripping
"""

from .api_key import API_KEY_HEADERS, is_authorized, strip_api_keys, verify_api_key

__all__ = [
    "API_KEY_HEADERS",
    "is_authorized",
    "strip_api_keys",
    "verify_api_key",
]
