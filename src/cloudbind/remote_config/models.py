"""
Remote config data models.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["LastFetchStatus", "ValueSource", "RemoteConfigValue", "RemoteConfigSettings"]

# Strings accepted as boolean true, compared case-insensitively
TRUTHY_STRINGS = frozenset({"1", "true", "t", "yes", "y", "on"})


class LastFetchStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    THROTTLED = "throttled"
    NO_FETCH_YET = "no_fetch_yet"


class ValueSource(str, Enum):
    """Where a RemoteConfigValue came from."""
    STATIC = "static"    # key is neither active nor defaulted
    DEFAULT = "default"  # from set_defaults()
    REMOTE = "remote"    # from the activated template


@dataclass(frozen=True)
class RemoteConfigValue:
    """
    A config value held as the string the server sent, with typed accessors.

    Static values read as "", 0, 0.0 and False.
    """
    value: str
    source: ValueSource

    def as_string(self) -> str:
        return self.value

    def as_int(self) -> int:
        """
        Raises:
            ValueError: If the value is not an integer literal
        """
        if self.source is ValueSource.STATIC:
            return 0
        try:
            return int(self.value.strip())
        except ValueError:
            raise ValueError(f"Remote config value {self.value!r} is not an integer") from None

    def as_float(self) -> float:
        """
        Raises:
            ValueError: If the value is not a number
        """
        if self.source is ValueSource.STATIC:
            return 0.0
        try:
            return float(self.value.strip())
        except ValueError:
            raise ValueError(f"Remote config value {self.value!r} is not a number") from None

    def as_bool(self) -> bool:
        return self.value.strip().lower() in TRUTHY_STRINGS


class RemoteConfigSettings(BaseModel):
    """Fetch behaviour of a RemoteConfig instance."""
    model_config = ConfigDict(frozen=True)

    fetch_timeout: float = Field(default=60.0, gt=0, description="Fetch timeout in seconds")
    minimum_fetch_interval: float = Field(
        default=12 * 60 * 60.0,
        ge=0,
        description="Seconds a fetched template is served from cache before refetching",
    )
