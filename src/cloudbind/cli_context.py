"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings and client
instances, avoiding global state and enabling proper dependency injection.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .remote_config.client import RemoteConfig
from .settings import Settings, create_settings_from_env
from .storage.client import Storage


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Manages application-level dependencies (settings, storage, remote config)
    that are initialized once and shared across a CLI command execution.
    Tests pass a context with pre-built clients through typer's obj.
    """
    settings: Settings
    _storage: Optional[Storage] = None
    _remote_config: Optional[RemoteConfig] = None

    @classmethod
    def from_env(cls) -> CLIContext:
        """
        Create CLI context from environment variables.

        Returns:
            CLIContext with settings loaded from environment
        """
        settings = create_settings_from_env()
        return cls(settings=settings)

    @property
    def storage(self) -> Storage:
        """
        Get or create the Storage instance (lazy initialization).

        Returns:
            Storage using the backend selected by settings.backend
        """
        if self._storage is None:
            self._storage = Storage.from_settings(self.settings)
        return self._storage

    @property
    def remote_config(self) -> RemoteConfig:
        """
        Get or create the RemoteConfig instance (lazy initialization).

        Raises:
            ValueError: If remote config is not configured
        """
        if self._remote_config is None:
            self._remote_config = RemoteConfig.from_settings(self.settings)
        return self._remote_config

    async def aclose(self) -> None:
        """Close whichever clients were created."""
        if self._storage is not None:
            await self._storage.aclose()
            self._storage = None
        if self._remote_config is not None:
            await self._remote_config.aclose()
            self._remote_config = None
