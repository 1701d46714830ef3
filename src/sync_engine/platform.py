"""
Platform Collaborator

The host application side of the engine: periodic remote polling, the
status indicator and rebuilding the local mirror from the remote copy.

Features:
- Platform contract consumed by the engine
- AutomaticUpdates background poller (idempotent start/stop)
- DefaultPlatform wiring the poller, a status snapshot and a rebuild hook
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from .models import SyncType

_LOGGER = logging.getLogger(__name__)

PollCallback = Callable[[], Awaitable[Any]]


class Platform(ABC):
    """Platform contract consumed by the engine."""

    @abstractmethod
    async def polling_start(self) -> None:
        ...

    @abstractmethod
    async def polling_stop(self) -> None:
        ...

    @abstractmethod
    async def status_refresh(
        self, enabled: Optional[bool] = None, sync_type: Optional[SyncType] = None
    ) -> None:
        ...

    @abstractmethod
    async def rebuild_local_mirror(self) -> None:
        ...


class AutomaticUpdates:
    """
    Runs a callback periodically in a background task.

    Usage:
        updates = AutomaticUpdates(900, engine.run_if_updates_available)
        await updates.start()
        ...
        await updates.stop()
    """

    def __init__(self, interval_seconds: float, callback: Optional[PollCallback] = None):
        self.interval_seconds = interval_seconds
        self.callback = callback
        self._task: Optional[asyncio.Task] = None
        self._polling: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start background polling task."""
        if self.running:
            return

        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        """
        Stop background polling task.

        A loop that is in the middle of a poll is not interrupted; it ends
        once that poll returns. A sleeping loop is cancelled.
        """
        task, self._task = self._task, None
        if task is None or task in self._polling:
            return

        task.cancel()
        # Waiting does not re-raise the task's cancellation, only our own
        await asyncio.wait([task])

    async def _poll_loop(self) -> None:
        """Background polling loop."""
        task = asyncio.current_task()
        while True:
            await asyncio.sleep(self.interval_seconds)
            if self.callback is None:
                continue
            self._polling.add(task)
            try:
                await self.callback()
            except asyncio.CancelledError:
                raise
            except Exception as err:
                _LOGGER.warning("Automatic update check failed: %s", err)
            finally:
                self._polling.discard(task)
            if self._task is not task:
                break


class DefaultPlatform(Platform):
    """
    Platform backed by AutomaticUpdates and an optional rebuild hook.

    The last status published is kept in ``status`` for the host UI.
    """

    def __init__(
        self,
        interval_seconds: float,
        poll_callback: Optional[PollCallback] = None,
        rebuild_callback: Optional[PollCallback] = None,
    ):
        self.automatic_updates = AutomaticUpdates(interval_seconds, poll_callback)
        self.rebuild_callback = rebuild_callback
        self.status: Dict[str, Any] = {"enabled": None, "syncing": None}

    def set_poll_callback(self, callback: PollCallback) -> None:
        self.automatic_updates.callback = callback

    async def polling_start(self) -> None:
        await self.automatic_updates.start()

    async def polling_stop(self) -> None:
        await self.automatic_updates.stop()

    async def status_refresh(
        self, enabled: Optional[bool] = None, sync_type: Optional[SyncType] = None
    ) -> None:
        if enabled is not None:
            self.status["enabled"] = enabled
        self.status["syncing"] = sync_type.value if sync_type else None
        _LOGGER.debug("Status refreshed: %s", self.status)

    async def rebuild_local_mirror(self) -> None:
        if self.rebuild_callback is None:
            _LOGGER.warning("No local mirror rebuild configured")
            return
        await self.rebuild_callback()
