"""
Pending upload handle shared by the shipped backends.

A backend describes a transfer as a coroutine function taking the handle; the
handle schedules it on the running event loop and exposes progress, pause,
resume and cancellation around it.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .base import TaskState
from .errors import StorageCanceled, StorageError, StorageUnknown

__all__ = ["PendingUpload", "TransferFn"]

logger = logging.getLogger(__name__)

TransferFn = Callable[["PendingUpload"], Awaitable[Dict[str, Any]]]


class PendingUpload:
    """
    UploadHandle running one transfer coroutine in an asyncio.Task.

    The transfer reports progress through checkpoint(); pausing takes effect
    at the next checkpoint. Cancellation surfaces as StorageCanceled, any
    non-StorageError failure as StorageUnknown. Must be created while an
    event loop is running.
    """

    def __init__(self, transfer: TransferFn, *, total_bytes: int, path: Optional[str] = None) -> None:
        self.total_bytes = total_bytes
        self.bytes_transferred = 0
        self.state = TaskState.RUNNING
        self.path = path
        self._listeners: List[Callable[[PendingUpload], None]] = []
        self._unpaused = asyncio.Event()
        self._unpaused.set()
        self._task = asyncio.get_running_loop().create_task(self._run(transfer))
        self._task.add_done_callback(self._on_done)

    async def _run(self, transfer: TransferFn) -> Dict[str, Any]:
        try:
            result = await transfer(self)
        except asyncio.CancelledError:
            self._settle(TaskState.CANCELED)
            raise StorageCanceled(f"Upload to {self.path} was cancelled", path=self.path) from None
        except StorageError:
            self._settle(TaskState.ERROR)
            raise
        except Exception as e:
            self._settle(TaskState.ERROR)
            raise StorageUnknown(f"Upload to {self.path} failed: {e}", path=self.path) from e

        self.bytes_transferred = self.total_bytes
        self._settle(TaskState.SUCCESS)
        return result

    def _on_done(self, task: asyncio.Task) -> None:
        # A task cancelled before its first step never enters _run
        if task.cancelled() and not self.state.terminal:
            self._settle(TaskState.CANCELED)

    def _settle(self, state: TaskState) -> None:
        logger.debug(f"Upload to {self.path} finished: {state.value} ({self.bytes_transferred}/{self.total_bytes} bytes)")
        self.state = state
        self._unpaused.set()
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)

    async def checkpoint(self, bytes_transferred: int) -> None:
        """Record progress, notify listeners, and wait here while paused."""
        self.bytes_transferred = bytes_transferred
        self._notify()
        await self._unpaused.wait()

    def add_listener(self, callback: Callable[[PendingUpload], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def pause(self) -> bool:
        if self.state is not TaskState.RUNNING:
            return False
        self.state = TaskState.PAUSED
        self._unpaused.clear()
        self._notify()
        return True

    def resume(self) -> bool:
        if self.state is not TaskState.PAUSED:
            return False
        self.state = TaskState.RUNNING
        self._unpaused.set()
        self._notify()
        return True

    def cancel(self) -> bool:
        if self.state.terminal or self._task.done():
            return False
        return self._task.cancel()

    def done(self) -> bool:
        return self._task.done()

    async def result(self) -> Dict[str, Any]:
        """Final backend metadata; cancelling the caller does not cancel the upload."""
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if self._task.cancelled():
                raise StorageCanceled(f"Upload to {self.path} was cancelled", path=self.path) from None
            raise

    def __await__(self):
        return self.result().__await__()
