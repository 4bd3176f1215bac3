"""
Bearer token cache.

Holds at most one token for the configured scope so the identity endpoint
(IMDS, workload identity, ...) is not hit on every request. Expiry is checked
lazily on read; there is no background refresh.
"""

import logging
import time
from typing import Callable, Optional

from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import AzureError
from pydantic import ValidationError

from ..errors import TokenAcquisitionError
from ..models import CachedToken

logger = logging.getLogger(__name__)


class TokenCache:
    """
    Single-slot token cache.

    The current entry is an immutable CachedToken swapped by plain attribute
    assignment, so concurrent request tasks can read and refresh without a
    lock. Concurrent refreshes are not deduplicated: each caller that finds
    the entry stale fetches on its own and the last store wins.
    """

    def __init__(
        self,
        credential: AsyncTokenCredential,
        scope: str,
        refresh_margin: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            credential: Async Azure credential used to fetch tokens
            scope: Scope requested for every token
            refresh_margin: Seconds before expiry at which a token counts as stale
            clock: Source of the current POSIX time
        """
        self._credential = credential
        self._scope = scope
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._current: Optional[CachedToken] = None

    @property
    def current(self) -> Optional[CachedToken]:
        return self._current

    async def acquire(self, now: Optional[float] = None) -> str:
        """
        Return a valid bearer token, fetching a new one if needed.

        Args:
            now: Current POSIX time; defaults to the cache clock

        Returns:
            Token string

        Raises:
            TokenAcquisitionError: If the credential fails. The cached entry,
                if any, is left as it was.
        """
        if now is None:
            now = self._clock()

        cached = self._current
        if cached is not None and cached.is_fresh(now, self._refresh_margin):
            return cached.value

        try:
            access_token = await self._credential.get_token(self._scope)
        except AzureError as e:
            raise TokenAcquisitionError(f"{type(e).__name__}: {e}") from e

        try:
            fresh = CachedToken(value=access_token.token, expires_on=access_token.expires_on)
        except ValidationError as e:
            raise TokenAcquisitionError("credential returned an unusable token") from e

        self._current = fresh
        logger.debug(f"Refreshed token for scope {self._scope}, expires at {fresh.expires_on}")
        return fresh.value

    def clear(self) -> None:
        self._current = None
