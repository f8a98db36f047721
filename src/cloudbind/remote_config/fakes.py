"""
Fake remote config backend for testing.

Subclasses the backend protocol so interface changes break tests immediately.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from .base import FetchResponse, RemoteConfigBackend
from .errors import FetchThrottled, RemoteConfigError
from .models import RemoteConfigSettings

__all__ = ["FakeRemoteConfigBackend"]


class FakeRemoteConfigBackend(RemoteConfigBackend):
    """
    In-memory template source.

    Every fetch returns the current template unless a failure was queued.
    The settings of each fetch are recorded for assertions.
    """

    def __init__(self, entries: Optional[Dict[str, str]] = None, template_version: str = "1") -> None:
        self.entries: Dict[str, str] = dict(entries or {})
        self.template_version = template_version
        self.fetch_count = 0
        self.fetch_settings: List[RemoteConfigSettings] = []
        self.closed = False
        self._failures: List[RemoteConfigError] = []

    def publish(self, entries: Dict[str, str]) -> None:
        """Replace the template and bump its version (test utility)."""
        self.entries = dict(entries)
        self.template_version = str(int(self.template_version) + 1)

    def throttle(self, throttle_end: Optional[datetime] = None) -> None:
        """Make the next fetch raise FetchThrottled (test utility)."""
        self._failures.append(FetchThrottled("Remote config fetch throttled", throttle_end=throttle_end))

    def fail_next(self, error: RemoteConfigError) -> None:
        """Make the next fetch raise error (test utility)."""
        self._failures.append(error)

    async def fetch(self, settings: RemoteConfigSettings) -> FetchResponse:
        self.fetch_count += 1
        self.fetch_settings.append(settings)
        if self._failures:
            raise self._failures.pop(0)
        return FetchResponse(
            entries=dict(self.entries),
            fetched_at=datetime.now(timezone.utc),
            template_version=self.template_version,
        )

    async def aclose(self) -> None:
        self.closed = True
