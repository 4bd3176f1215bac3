"""
Identity Package

Obtains Entra ID bearer tokens for the upstream and keeps the current one
cached in-process.

Modules:
- credentials: DefaultAzureCredential construction
- token_cache: single-slot cache with a refresh margin
"""

from .credentials import create_credential
from .token_cache import TokenCache

__all__ = [
    "TokenCache",
    "create_credential",
]
