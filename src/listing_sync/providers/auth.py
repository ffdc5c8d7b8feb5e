"""
Bearer token cache.

Token minting (request signing) is injected; the cache only decides when a
fresh token is needed.
"""

import logging
import threading
import time
from typing import Callable, Optional, Tuple


logger = logging.getLogger(__name__)

# (token, expires_at as epoch seconds)
MintedToken = Tuple[str, float]

REFRESH_MARGIN_SECONDS = 60


class TokenCache:
    """
    Caches a bearer token and refreshes it shortly before it expires.

    Args:
        mint: Callable returning (token, expires_at_epoch_seconds)
        clock: Time source in epoch seconds
        refresh_margin_seconds: Refresh when this close to expiry

    Example:
        >>> cache = TokenCache(lambda: ("abc", time.time() + 1200))
        >>> cache.get_token()
        'abc'
    """

    def __init__(
        self,
        mint: Callable[[], MintedToken],
        clock: Callable[[], float] = time.time,
        refresh_margin_seconds: float = REFRESH_MARGIN_SECONDS,
    ):
        self._mint = mint
        self._clock = clock
        self.refresh_margin_seconds = refresh_margin_seconds
        self._token: Optional[str] = None
        self._expires_at: Optional[float] = None
        self._lock = threading.Lock()

    def get_token(self) -> str:
        with self._lock:
            now = self._clock()
            if (
                self._token is not None
                and self._expires_at is not None
                and now < self._expires_at - self.refresh_margin_seconds
            ):
                return self._token
            self._token, self._expires_at = self._mint()
            logger.debug(f"Minted new token, expires in {self._expires_at - now:.0f}s")
            return self._token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = None


def static_token(token: str, lifetime_seconds: float = 3600, clock: Callable[[], float] = time.time):
    """Minter for a pre-issued token, re-stamped with `lifetime_seconds` each time."""
    def mint() -> MintedToken:
        return token, clock() + lifetime_seconds
    return mint
