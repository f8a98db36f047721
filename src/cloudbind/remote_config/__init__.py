"""
Remote config package - fetched, activatable key/value configuration.
"""
from .client import RemoteConfig
from .errors import FetchThrottled, RemoteConfigError
from .models import LastFetchStatus, RemoteConfigSettings, RemoteConfigValue, ValueSource

__all__ = [
    "FetchThrottled",
    "LastFetchStatus",
    "RemoteConfig",
    "RemoteConfigError",
    "RemoteConfigSettings",
    "RemoteConfigValue",
    "ValueSource",
]
