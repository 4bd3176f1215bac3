"""
Data Models Module

Pydantic models shared across the proxy.
"""

from pydantic import BaseModel, ConfigDict, Field


class CachedToken(BaseModel):
    """
    A bearer token together with its nominal expiry.

    Instances are frozen; the token cache replaces the whole object on
    refresh so a reader never sees a new value with an old expiry.
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., description="Bearer token string", min_length=1)
    expires_on: float = Field(..., description="Expiry as POSIX timestamp (seconds)")

    def is_fresh(self, now: float, margin: float) -> bool:
        """True while `now` is still `margin` seconds or more before expiry."""
        return now < self.expires_on - margin

    def __repr__(self) -> str:
        # never print the token itself
        return f"CachedToken(expires_on={self.expires_on})"

    __str__ = __repr__
