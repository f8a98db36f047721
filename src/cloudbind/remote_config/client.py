"""
RemoteConfig façade.

Holds three layers of values: in-app defaults, the last fetched (pending)
template and the active template. Lookups resolve active, then defaults,
then a static empty value.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from ..settings import Settings
from .base import FetchResponse, RemoteConfigBackend
from .errors import FetchThrottled, RemoteConfigError
from .models import LastFetchStatus, RemoteConfigSettings, RemoteConfigValue, ValueSource

__all__ = ["RemoteConfig"]

logger = logging.getLogger(__name__)


def _to_config_string(value: Any) -> str:
    # Booleans are stored the way the server sends them
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RemoteConfig:
    """
    Remote config client over an injected backend.

    Fetching never changes the values callers see; activate() promotes the
    last fetched template.
    """

    def __init__(
        self,
        backend: RemoteConfigBackend,
        *,
        settings: Optional[RemoteConfigSettings] = None,
    ) -> None:
        self.backend = backend
        self.settings = settings or RemoteConfigSettings()
        self.last_fetch_time: Optional[datetime] = None
        self.last_fetch_status = LastFetchStatus.NO_FETCH_YET
        self._defaults: Dict[str, str] = {}
        self._active: Dict[str, str] = {}
        self._active_version: Optional[str] = None
        self._pending: Optional[FetchResponse] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> RemoteConfig:
        """
        Build a RemoteConfig backed by the REST API.

        Raises:
            ValueError: If project_id, api_key and app_id are not all set
        """
        from .rest_backend import RestRemoteConfigBackend

        backend = RestRemoteConfigBackend(settings)
        config_settings = RemoteConfigSettings(
            fetch_timeout=settings.fetch_timeout_s,
            minimum_fetch_interval=settings.minimum_fetch_interval_s,
        )
        return cls(backend, settings=config_settings)

    def set_config_settings(self, settings: RemoteConfigSettings) -> None:
        self.settings = settings

    def set_defaults(self, defaults: Mapping[str, Any]) -> None:
        """Replace the in-app default values; non-string values are stringified."""
        self._defaults = {key: _to_config_string(value) for key, value in defaults.items()}

    async def fetch(self) -> None:
        """
        Fetch the template without activating it.

        Raises:
            FetchThrottled: Unchanged from the backend, after the status is
                recorded as THROTTLED
            RemoteConfigError: After the status is recorded as FAILURE
        """
        try:
            response = await self.backend.fetch(self.settings)
        except FetchThrottled as e:
            self.last_fetch_status = LastFetchStatus.THROTTLED
            logger.warning(f"Remote config fetch throttled; retry after {e.retry_after}s")
            raise
        except RemoteConfigError:
            self.last_fetch_status = LastFetchStatus.FAILURE
            raise

        self._pending = response
        self.last_fetch_status = LastFetchStatus.SUCCESS
        self.last_fetch_time = response.fetched_at
        logger.debug(f"Fetched {len(response.entries)} remote config entries (cached={response.from_cache})")

    async def activate(self) -> bool:
        """
        Make the last fetched template active.

        Returns:
            True if values changed; False if nothing was fetched or the
            fetched template is already active
        """
        pending, self._pending = self._pending, None
        if pending is None:
            return False
        if pending.entries == self._active and pending.template_version == self._active_version:
            return False
        self._active = dict(pending.entries)
        self._active_version = pending.template_version
        return True

    async def fetch_and_activate(self) -> bool:
        await self.fetch()
        return await self.activate()

    def get_value(self, key: str) -> RemoteConfigValue:
        if key in self._active:
            return RemoteConfigValue(self._active[key], ValueSource.REMOTE)
        if key in self._defaults:
            return RemoteConfigValue(self._defaults[key], ValueSource.DEFAULT)
        return RemoteConfigValue("", ValueSource.STATIC)

    def get_string(self, key: str) -> str:
        return self.get_value(key).as_string()

    def get_int(self, key: str) -> int:
        return self.get_value(key).as_int()

    def get_float(self, key: str) -> float:
        return self.get_value(key).as_float()

    def get_bool(self, key: str) -> bool:
        return self.get_value(key).as_bool()

    def get_all(self) -> Dict[str, RemoteConfigValue]:
        """Every key with an active or default value."""
        keys = sorted(set(self._defaults) | set(self._active))
        return {key: self.get_value(key) for key in keys}

    async def aclose(self) -> None:
        await self.backend.aclose()

    async def __aenter__(self) -> RemoteConfig:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
