"""
Firebase Remote Config REST backend.

Fetches the client template from the namespaces/firebase:fetch endpoint and
serves it from memory until the minimum fetch interval has elapsed.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..settings import Settings
from .base import FetchResponse, RemoteConfigBackend
from .errors import FetchThrottled, RemoteConfigError
from .models import RemoteConfigSettings

__all__ = ["RestRemoteConfigBackend"]

logger = logging.getLogger(__name__)

SDK_VERSION = "cloudbind/0.1.0"

# Template states that carry no entries
_EMPTY_STATES = ("NO_TEMPLATE", "EMPTY_CONFIG")


def _parse_retry_after(value: Optional[str], now: datetime) -> Optional[datetime]:
    """Retry-After as delta-seconds or an HTTP date."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return now + timedelta(seconds=int(value))
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class RestRemoteConfigBackend(RemoteConfigBackend):
    """
    Remote config backend for the Firebase Remote Config REST API.

    Args:
        settings: Must have project_id, api_key and app_id set
        client: Optional httpx.AsyncClient (e.g. with a MockTransport)

    Raises:
        ValueError: If remote config is not configured in settings
    """

    # Backoff between timed-out attempts
    retry_wait = wait_exponential(multiplier=1, min=1, max=10)

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> None:
        if not settings.remote_config_enabled:
            raise ValueError("Remote config requires project_id, api_key and app_id")
        self.project_id = settings.project_id
        self.app_id = settings.app_id
        self.host = settings.remote_config_host.rstrip("/")
        self._api_key = settings.api_key
        self._retries = settings.http_retry
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient()
        # Stable per backend instance, as an installation id would be
        self.app_instance_id = uuid.uuid4().hex
        self._cached: Optional[FetchResponse] = None

    @property
    def fetch_url(self) -> str:
        return f"{self.host}/v1/projects/{self.project_id}/namespaces/firebase:fetch"

    async def fetch(self, settings: RemoteConfigSettings) -> FetchResponse:
        now = datetime.now(timezone.utc)
        if self._cached is not None and self._cached.fetched_at is not None:
            age = (now - self._cached.fetched_at).total_seconds()
            if age < settings.minimum_fetch_interval:
                logger.debug(f"Serving cached template ({age:.0f}s old, interval {settings.minimum_fetch_interval:.0f}s)")
                return FetchResponse(
                    entries=dict(self._cached.entries),
                    fetched_at=self._cached.fetched_at,
                    template_version=self._cached.template_version,
                    from_cache=True,
                )

        body = await self._post(settings.fetch_timeout, now)
        state = body.get("state")
        if state == "NO_CHANGE" and self._cached is not None:
            entries = dict(self._cached.entries)
        elif state in _EMPTY_STATES:
            entries = {}
        else:
            raw_entries = body.get("entries") or {}
            if not isinstance(raw_entries, dict):
                raise RemoteConfigError(f"Invalid fetch response: entries is {type(raw_entries).__name__}")
            entries = {str(key): str(value) for key, value in raw_entries.items()}

        version = body.get("templateVersion")
        self._cached = FetchResponse(
            entries=entries,
            fetched_at=now,
            template_version=str(version) if version is not None else None,
        )
        logger.debug(f"Fetched template version {version} with {len(entries)} entries")
        return self._cached

    async def _post(self, timeout: float, now: datetime) -> Dict[str, Any]:
        payload = {
            "sdk_version": SDK_VERSION,
            "app_instance_id": self.app_instance_id,
            "app_id": self.app_id,
        }
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retries + 1),
                wait=self.retry_wait,
                retry=retry_if_exception_type(httpx.TimeoutException),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.post(
                        self.fetch_url, params={"key": self._api_key}, json=payload, timeout=timeout
                    )
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                throttle_end = _parse_retry_after(e.response.headers.get("Retry-After"), now)
                logger.warning(f"Remote config fetch throttled until {throttle_end}")
                raise FetchThrottled("Remote config fetch throttled", throttle_end=throttle_end) from e
            raise RemoteConfigError(f"Remote config fetch failed with HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise RemoteConfigError(f"Network error fetching remote config: {type(e).__name__}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteConfigError(f"Invalid JSON in fetch response: {e}") from e
        if not isinstance(body, dict):
            raise RemoteConfigError("Invalid fetch response: expected a JSON object")
        return body

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
