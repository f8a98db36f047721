"""Root pytest configuration for cloudbind tests."""
import httpx
import pytest

from cloudbind.remote_config.client import RemoteConfig
from cloudbind.remote_config.fakes import FakeRemoteConfigBackend
from cloudbind.remote_config.models import RemoteConfigSettings
from cloudbind.settings import Settings
from cloudbind.storage.client import Storage
from cloudbind.storage.fakes import InMemoryStorageBackend


# Keep developer environment out of settings loaded by tests
@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Automatically set up test environment variables."""
    monkeypatch.setenv("CLOUDBIND_STORAGE_BUCKET", "test-bucket")
    monkeypatch.setenv("CLOUDBIND_BACKEND", "memory")
    for name in (
        "CLOUDBIND_STORAGE_HOST",
        "CLOUDBIND_AUTH_TOKEN",
        "CLOUDBIND_HTTP_TIMEOUT",
        "CLOUDBIND_HTTP_RETRY",
        "CLOUDBIND_MAX_DOWNLOAD_SIZE",
        "CLOUDBIND_LIST_PAGE_SIZE",
        "CLOUDBIND_PROJECT_ID",
        "CLOUDBIND_API_KEY",
        "CLOUDBIND_APP_ID",
        "CLOUDBIND_REMOTE_CONFIG_HOST",
        "CLOUDBIND_FETCH_TIMEOUT",
        "CLOUDBIND_MIN_FETCH_INTERVAL",
    ):
        monkeypatch.delenv(name, raising=False)


# Standardized test fixtures
@pytest.fixture
def settings():
    """Standard test settings (in-memory backend)."""
    return Settings(storage_bucket="test-bucket", backend="memory")


@pytest.fixture
def backend():
    """Standard in-memory storage backend for testing."""
    return InMemoryStorageBackend(bucket="test-bucket", chunk_size=4)


@pytest.fixture
def storage(backend):
    """Storage over the in-memory backend; downloads are served by its transport."""
    return Storage(backend, http=httpx.AsyncClient(transport=backend.transport()))


@pytest.fixture
def config_backend():
    """Fake remote config backend with a small template."""
    return FakeRemoteConfigBackend({"welcome": "hello", "max_items": "25", "beta": "true"})


@pytest.fixture
def remote_config(config_backend):
    """RemoteConfig over the fake backend."""
    return RemoteConfig(config_backend, settings=RemoteConfigSettings(minimum_fetch_interval=0))
