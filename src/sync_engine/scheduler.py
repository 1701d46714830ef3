"""
Sync Scheduler - Queue Drain Loop

Owns the pending-request queue and drives the providers, the remote
commit and failure recovery.

Only one request is ever in flight. drain() claims the in-flight slot
before its first await, so overlapping calls on the event loop return
immediately instead of processing concurrently.

Drains run in their own tasks. Callers wait on them through a shield,
so a caller giving up never interrupts the request being processed.
"""

import asyncio
import logging
from typing import Optional, Set

from .api import ApiClient
from .exceptions import SyncDisabledError, SyncFailedError
from .lifecycle import LifecycleController
from .models import (
    CompletionSignal,
    MessageCommand,
    StoreKey,
    SyncRequest,
    SyncType,
    generate_unique_id,
)
from .providers import ProviderCoordinator
from .platform import Platform
from .queue import SyncQueue
from .recovery import RecoveryController
from .store import Store

_LOGGER = logging.getLogger(__name__)


def _log_drain_failure(task: asyncio.Future) -> None:
    # Failures already reached the affected requests' callers
    if not task.cancelled() and task.exception() is not None:
        _LOGGER.debug("Drain failed: %s", task.exception())


class SyncScheduler:
    """
    Queues sync requests and processes them one at a time.

    Usage:
        scheduler = SyncScheduler(store, api, platform, queue, coordinator, lifecycle, recovery)

        # Queue and run
        await scheduler.enqueue(SyncRequest(type=SyncType.REMOTE))

        # Poll
        await scheduler.run_if_updates_available(is_background=True)
    """

    def __init__(
        self,
        store: Store,
        api: ApiClient,
        platform: Platform,
        queue: SyncQueue,
        coordinator: ProviderCoordinator,
        lifecycle: LifecycleController,
        recovery: RecoveryController,
    ):
        self.store = store
        self.api = api
        self.platform = platform
        self.queue = queue
        self.coordinator = coordinator
        self.lifecycle = lifecycle
        self.recovery = recovery
        self._drain_tasks: Set[asyncio.Future] = set()

    async def enqueue(self, request: SyncRequest, run_immediately: bool = True) -> None:
        """
        Add a request to the queue.

        Completes once the request has been processed and, when
        ``run_immediately`` is set, once the drain it triggered has
        finished. Either failing fails the call.
        """
        sync_enabled = await self.lifecycle.is_enabled()

        # Only the newest work survives a disabled state
        if not sync_enabled:
            self.queue.clear_all()

        # Cancel pre-empts everything pending
        if request.type is SyncType.CANCEL:
            self.queue.clear_all()

        request.completion = CompletionSignal()
        request.unique_id = request.unique_id or generate_unique_id()
        self.queue.enqueue(request)
        _LOGGER.info("Sync %s (%s) queued", request.unique_id, request.type.value)

        waits = [request.completion.wait()]
        if run_immediately:
            waits.append(asyncio.shield(self._start_drain()))
        await asyncio.gather(*waits)

    def _start_drain(self, is_background: bool = False) -> asyncio.Future:
        # The event loop only keeps weak references to tasks
        task = asyncio.ensure_future(self.drain(is_background))
        self._drain_tasks.add(task)
        task.add_done_callback(self._drain_tasks.discard)
        task.add_done_callback(_log_drain_failure)
        return task

    async def drain(self, is_background: bool = False) -> None:
        """Process queued requests until the queue is empty."""
        if self.queue.in_flight is not None or len(self.queue) == 0:
            return

        current = self.queue.claim_next()
        update_remote = False
        succeeded = False
        try:
            if await self.lifecycle.is_enabled():
                await self.platform.polling_stop()

            while True:
                _LOGGER.info(
                    "Processing sync %s%s (%d waiting in queue)",
                    current.unique_id,
                    " in background" if is_background else "",
                    len(self.queue),
                )
                await self.lifecycle.set_is_syncing(current.type)

                if current.type is SyncType.CANCEL:
                    await self.lifecycle.disable()
                    current.resolve()
                    update_remote = False
                    break

                sync_change = await self.coordinator.process_sync(current)
                await self._enable_on_first_sync(current)
                current.resolve()
                update_remote = sync_change and current.type is not SyncType.LOCAL
                await self.lifecycle.set_is_syncing()

                if len(self.queue) == 0:
                    break
                current = self.queue.claim_next()

            if update_remote:
                await self._update_remote(current)
            succeeded = True
        except Exception as err:
            final_error = await self.recovery.handle_failed_sync(current, err)
            raise final_error
        finally:
            if not succeeded:
                # Interrupted drains still settle the request being processed
                current.reject(SyncFailedError())
            self.queue.release(current)
            if await self.lifecycle.is_enabled():
                await self.platform.polling_start()
            if succeeded:
                self._drain_late_arrivals(is_background)

    def _drain_late_arrivals(self, is_background: bool) -> None:
        # Requests queued while the commit was in progress missed this drain
        if len(self.queue) == 0 or self.queue.in_flight is not None:
            return
        self._start_drain(is_background)

    async def _enable_on_first_sync(self, request: SyncRequest) -> None:
        # Syncing for the first time or re-syncing turns sync on
        if await self.lifecycle.is_enabled() or request.command is MessageCommand.RESTORE_DATA:
            return
        await self.lifecycle.enable()
        _LOGGER.info("Sync enabled")

    async def _update_remote(self, current: SyncRequest) -> None:
        payload = self.coordinator.commit_payload()
        last_updated = await self.store.get(StoreKey.LAST_UPDATED)
        try:
            response = await self.api.commit_update(payload, last_updated)
        except Exception as err:
            await self.coordinator.handle_update_remote_failed(err, current)
            raise

        await self.store.set(StoreKey.LAST_UPDATED, response.last_updated)
        _LOGGER.info("Remote data updated at %s", response.last_updated)

    async def run_if_updates_available(self, is_background: bool = False) -> None:
        """Queue a Local sync when the remote has changed, then drain."""
        if not await self.lifecycle.is_enabled():
            raise SyncDisabledError()

        if len(self.queue) == 0 and await self.lifecycle.check_for_updates():
            await self.enqueue(SyncRequest(type=SyncType.LOCAL))

        await asyncio.shield(self._start_drain(is_background))

    def get_current_sync(self) -> Optional[SyncRequest]:
        """Latest queued request, or the one in flight when nothing is queued."""
        return self.queue.tail if len(self.queue) else self.queue.in_flight

    def get_queue_length(self) -> int:
        return len(self.queue)
