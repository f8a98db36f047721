"""
Settings and configuration for cloudbind.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at client construction time.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "BACKENDS"]

BACKENDS = ("rest", "memory")

# Firebase Storage caps a single list page at 1000 results
MAX_LIST_PAGE_SIZE = 1000


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for cloudbind clients.

    Storage Settings:
        storage_bucket: Default bucket name, without the gs:// scheme (required)
        storage_host: Base URL of the Firebase Storage REST API
        auth_token: Firebase ID token sent as "Authorization: Firebase <token>"
        http_timeout_s: HTTP request timeout in seconds
        http_retry: Extra attempts for timed-out requests (0=no retry)
        max_download_size: Default size limit for Reference.get_data()
        list_page_size: Page size used by list_all()
        backend: Storage backend to construct ("rest" or "memory")

    Remote Config Settings:
        project_id: Firebase project id
        api_key: Web API key
        app_id: Firebase app id
        remote_config_host: Base URL of the Remote Config REST API
        fetch_timeout_s: Fetch timeout in seconds
        minimum_fetch_interval_s: Minimum age of the cached template before refetching
    """
    # Storage settings
    storage_bucket: str
    storage_host: str = "https://firebasestorage.googleapis.com"
    auth_token: Optional[str] = None
    http_timeout_s: float = 30.0
    http_retry: int = 0
    max_download_size: int = 10 * 1024 * 1024
    list_page_size: int = MAX_LIST_PAGE_SIZE
    backend: str = "rest"

    # Remote config settings
    project_id: Optional[str] = None
    api_key: Optional[str] = None
    app_id: Optional[str] = None
    remote_config_host: str = "https://firebaseremoteconfig.googleapis.com"
    fetch_timeout_s: float = 60.0
    minimum_fetch_interval_s: float = 12 * 60 * 60.0

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.storage_bucket:
            raise ValueError("storage_bucket is required")

        # Bucket names are bare names; schemes and slashes belong to paths
        bucket_pattern = r"^[a-z0-9][a-z0-9._-]*[a-z0-9]$"
        if not re.match(bucket_pattern, self.storage_bucket):
            raise ValueError(f"Invalid storage_bucket format: {self.storage_bucket}")

        for name in ("storage_host", "remote_config_host"):
            value = getattr(self, name)
            if not re.match(r"^https?://[^/\s]+", value):
                raise ValueError(f"{name} must be an http(s) URL, got {value!r}")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.fetch_timeout_s <= 0:
            raise ValueError(f"fetch_timeout_s must be positive, got {self.fetch_timeout_s}")

        if self.minimum_fetch_interval_s < 0:
            raise ValueError(f"minimum_fetch_interval_s must be non-negative, got {self.minimum_fetch_interval_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if not 1 <= self.list_page_size <= MAX_LIST_PAGE_SIZE:
            raise ValueError(f"list_page_size must be between 1 and {MAX_LIST_PAGE_SIZE}, got {self.list_page_size}")

        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend: {self.backend}. Supported values: {', '.join(BACKENDS)}")

        # Remote config is optional, but if partially configured it must be complete
        remote_fields = {
            "project_id": self.project_id,
            "api_key": self.api_key,
            "app_id": self.app_id,
        }
        configured = [name for name, value in remote_fields.items() if value]
        if configured and len(configured) != len(remote_fields):
            missing = sorted(set(remote_fields) - set(configured))
            raise ValueError(f"Remote config partially configured, missing: {', '.join(missing)}")

    @property
    def remote_config_enabled(self) -> bool:
        """True when project_id, api_key and app_id are all set."""
        return bool(self.project_id and self.api_key and self.app_id)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        Storage:
        - CLOUDBIND_STORAGE_BUCKET (required)
        - CLOUDBIND_STORAGE_HOST (default: https://firebasestorage.googleapis.com)
        - CLOUDBIND_AUTH_TOKEN (optional)
        - CLOUDBIND_HTTP_TIMEOUT (default: 30.0)
        - CLOUDBIND_HTTP_RETRY (default: 0)
        - CLOUDBIND_MAX_DOWNLOAD_SIZE (default: 10485760)
        - CLOUDBIND_LIST_PAGE_SIZE (default: 1000)
        - CLOUDBIND_BACKEND (default: rest)

        Remote Config:
        - CLOUDBIND_PROJECT_ID, CLOUDBIND_API_KEY, CLOUDBIND_APP_ID (all or none)
        - CLOUDBIND_REMOTE_CONFIG_HOST (default: https://firebaseremoteconfig.googleapis.com)
        - CLOUDBIND_FETCH_TIMEOUT (default: 60.0)
        - CLOUDBIND_MIN_FETCH_INTERVAL (default: 43200.0)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid or required values missing

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    storage_bucket = os.getenv("CLOUDBIND_STORAGE_BUCKET")
    if not storage_bucket:
        raise ValueError("CLOUDBIND_STORAGE_BUCKET environment variable is required")

    # Accept "gs://bucket" for convenience
    if storage_bucket.startswith("gs://"):
        storage_bucket = storage_bucket[len("gs://"):].rstrip("/")

    return Settings(
        storage_bucket=storage_bucket,
        storage_host=os.getenv("CLOUDBIND_STORAGE_HOST", "https://firebasestorage.googleapis.com"),
        auth_token=os.getenv("CLOUDBIND_AUTH_TOKEN"),
        http_timeout_s=get_float("CLOUDBIND_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("CLOUDBIND_HTTP_RETRY", 0),
        max_download_size=get_int("CLOUDBIND_MAX_DOWNLOAD_SIZE", 10 * 1024 * 1024),
        list_page_size=get_int("CLOUDBIND_LIST_PAGE_SIZE", MAX_LIST_PAGE_SIZE),
        backend=os.getenv("CLOUDBIND_BACKEND", "rest").lower(),
        project_id=os.getenv("CLOUDBIND_PROJECT_ID"),
        api_key=os.getenv("CLOUDBIND_API_KEY"),
        app_id=os.getenv("CLOUDBIND_APP_ID"),
        remote_config_host=os.getenv("CLOUDBIND_REMOTE_CONFIG_HOST", "https://firebaseremoteconfig.googleapis.com"),
        fetch_timeout_s=get_float("CLOUDBIND_FETCH_TIMEOUT", 60.0),
        minimum_fetch_interval_s=get_float("CLOUDBIND_MIN_FETCH_INTERVAL", 12 * 60 * 60.0),
    )
