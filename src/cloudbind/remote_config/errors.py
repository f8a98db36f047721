"""
Remote config error classes.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


class RemoteConfigError(Exception):
    """
    Base class for remote config errors.

    Raised when:
    - The fetch endpoint returns a non-success HTTP status (other than 429)
    - The fetch request fails at the network level
    - The fetch response is not a valid template
    """


class FetchThrottled(RemoteConfigError):
    """
    The fetch was rate-limited by the server.

    Raised when:
    - HTTP 429 Too Many Requests from the fetch endpoint

    Attributes:
        throttle_end: When fetching may be attempted again, if the server said
    """

    def __init__(self, message: str, *, throttle_end: Optional[datetime] = None):
        super().__init__(message)
        self.message = message
        self.throttle_end = throttle_end

    @property
    def retry_after(self) -> Optional[float]:
        """Seconds until throttle_end (never negative), or None if unknown."""
        if self.throttle_end is None:
            return None
        remaining = (self.throttle_end - datetime.now(timezone.utc)).total_seconds()
        return max(remaining, 0.0)


__all__ = ["RemoteConfigError", "FetchThrottled"]
