# Fake implementations for testing and local development

from .fake_backend import InMemoryStorageBackend, MemoryRef

__all__ = ["InMemoryStorageBackend", "MemoryRef"]
