"""
Transfer tasks.

A Task is the caller's handle on one upload started by a Reference. It wraps
the backend's pending-operation handle; progress, pause, resume and cancel
are forwarded to that handle, not reimplemented here.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Optional

from .base import Capability, TaskState, UploadHandle
from .errors import StorageUnsupported
from .models import FullMetadata
from .translate import backend_to_full_metadata

if TYPE_CHECKING:
    from .reference import Reference

__all__ = ["Task", "TaskSnapshot", "TaskState"]


@dataclass(frozen=True)
class TaskSnapshot:
    """
    Point-in-time view of a Task.

    metadata is set only once the upload succeeded.
    """
    ref: Reference
    state: TaskState
    bytes_transferred: int
    total_bytes: int
    metadata: Optional[FullMetadata] = None


class Task:
    """
    Handle on one in-flight upload. Single use.

    Awaiting the task returns the final TaskSnapshot (with metadata) or raises
    the upload's StorageError; StorageCanceled after cancel(). Awaiting again
    yields the same outcome.
    """

    def __init__(self, ref: Reference, handle: UploadHandle) -> None:
        self.ref = ref
        self._handle = handle
        self._metadata: Optional[FullMetadata] = None

    @property
    def snapshot(self) -> TaskSnapshot:
        return TaskSnapshot(
            ref=self.ref,
            state=self._handle.state,
            bytes_transferred=self._handle.bytes_transferred,
            total_bytes=self._handle.total_bytes,
            metadata=self._metadata,
        )

    @property
    def state(self) -> TaskState:
        return self._handle.state

    def _require_pause_resume(self, operation: str) -> None:
        if Capability.PAUSE_RESUME not in self.ref.storage.capabilities:
            raise StorageUnsupported(
                f"{operation}() is not supported by this storage backend", path=self.ref.full_path
            )

    def pause(self) -> bool:
        """
        Pause the upload.

        Returns:
            True if the upload was running and is now paused

        Raises:
            StorageUnsupported: If the backend lacks Capability.PAUSE_RESUME
        """
        self._require_pause_resume("pause")
        return self._handle.pause()

    def resume(self) -> bool:
        """Resume a paused upload; same contract as pause()."""
        self._require_pause_resume("resume")
        return self._handle.resume()

    def cancel(self) -> bool:
        """Cancel the upload; False if it already finished."""
        return self._handle.cancel()

    async def events(self) -> AsyncIterator[TaskSnapshot]:
        """
        Yield a snapshot on every progress or state change until the task
        reaches a terminal state. The terminal snapshot is yielded last;
        errors are not raised here, await the task for the outcome.
        """
        queue: asyncio.Queue[TaskState] = asyncio.Queue()
        remove = self._handle.add_listener(lambda handle: queue.put_nowait(handle.state))
        try:
            state = self._handle.state
            if state is TaskState.SUCCESS:
                await self._finish()
            yield self.snapshot
            while not state.terminal:
                state = await queue.get()
                if state is TaskState.SUCCESS:
                    # Translate the final metadata before the last snapshot
                    await self._finish()
                yield self.snapshot
        finally:
            remove()

    async def _finish(self) -> TaskSnapshot:
        if self._metadata is None:
            raw = await self._handle
            self._metadata = backend_to_full_metadata(raw)
        return self.snapshot

    def __await__(self):
        return self._finish().__await__()

    def __repr__(self) -> str:
        return f"Task(ref={self.ref.full_path!r}, state={self._handle.state.value})"
