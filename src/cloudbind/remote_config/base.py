"""
Remote config backend interface.

A backend fetches the published template for the configured app. Whether a
fetch hits the network or serves a cached template is the backend's concern;
RemoteConfig only tracks fetch status and activation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Protocol, runtime_checkable

from .models import RemoteConfigSettings

__all__ = ["FetchResponse", "RemoteConfigBackend"]


@dataclass(frozen=True)
class FetchResponse:
    """
    Result of one fetch.

    Attributes:
        entries: Parameter values as sent by the server (all strings)
        fetched_at: When the template was obtained from the server
        template_version: Server template version, if reported
        from_cache: True when served within the minimum fetch interval
    """
    entries: Dict[str, str] = field(default_factory=dict)
    fetched_at: Optional[datetime] = None
    template_version: Optional[str] = None
    from_cache: bool = False


@runtime_checkable
class RemoteConfigBackend(Protocol):
    """Protocol for remote config template sources."""

    async def fetch(self, settings: RemoteConfigSettings) -> FetchResponse:
        """
        Fetch the current template.

        Raises:
            FetchThrottled: If the server rate-limited the fetch
            RemoteConfigError: On any other failure
        """
        ...

    async def aclose(self) -> None:
        ...
