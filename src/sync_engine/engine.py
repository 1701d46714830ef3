"""
Sync Engine

Wires the scheduler, provider coordinator, lifecycle and recovery
components around a store, an API client and a platform, and exposes
the engine's public operations.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from .api import ApiClient, HttpApiClient
from .config import SyncConfig
from .lifecycle import LifecycleController
from .models import StoreKey, SyncRequest
from .platform import DefaultPlatform, Platform
from .providers import ProviderCoordinator, SyncProvider
from .queue import SyncQueue
from .recovery import RecoveryController
from .scheduler import SyncScheduler
from .store import JsonFileStore, MemoryStore, Store

_LOGGER = logging.getLogger(__name__)


class SyncEngine:
    """
    Keeps a local data set in step with its remote copy.

    Usage:
        config = SyncConfig.from_env()
        engine = SyncEngine.from_config(config, [bookmarks_provider])
        await engine.start()

        # Local change
        await engine.enqueue(SyncRequest(type=SyncType.REMOTE))

        # Remote change?
        await engine.run_if_updates_available()
    """

    def __init__(
        self,
        store: Store,
        api: ApiClient,
        platform: Platform,
        providers: Iterable[SyncProvider],
    ):
        self.store = store
        self.api = api
        self.platform = platform
        self.queue = SyncQueue()
        self.coordinator = ProviderCoordinator(providers)
        self.lifecycle = LifecycleController(store, api, platform, self.coordinator, self.queue)
        self.recovery = RecoveryController(store, platform, self.lifecycle, self.queue)
        self.scheduler = SyncScheduler(
            store, api, platform, self.queue, self.coordinator, self.lifecycle, self.recovery
        )

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        providers: Iterable[SyncProvider],
        platform: Optional[Platform] = None,
    ) -> "SyncEngine":
        """
        Build an engine from configuration.

        A JSON file store is used when ``store_path`` is set. Without an
        explicit platform, a DefaultPlatform polls the remote every
        ``polling_interval_seconds``.
        """
        store = JsonFileStore(config.store_path) if config.store_path else MemoryStore()
        api = HttpApiClient(config)
        if platform is None:
            platform = DefaultPlatform(config.polling_interval_seconds)
        engine = cls(store, api, platform, providers)
        if isinstance(platform, DefaultPlatform):
            platform.set_poll_callback(engine.poll)
        return engine

    async def start(self) -> None:
        """Resume polling and providers when sync was left enabled."""
        if await self.lifecycle.is_enabled():
            await self.lifecycle.enable()
        await self.lifecycle.set_is_syncing()

    async def poll(self) -> None:
        await self.run_if_updates_available(is_background=True)

    # ==================== Public operations ====================

    async def enqueue(self, request: SyncRequest, run_immediately: bool = True) -> None:
        await self.scheduler.enqueue(request, run_immediately)

    async def run_if_updates_available(self, is_background: bool = False) -> None:
        await self.scheduler.run_if_updates_available(is_background)

    async def enable(self) -> None:
        await self.lifecycle.enable()

    async def disable(self) -> None:
        await self.lifecycle.disable()

    async def check_for_updates(self) -> bool:
        return await self.lifecycle.check_for_updates()

    def get_current_sync(self) -> Optional[SyncRequest]:
        return self.scheduler.get_current_sync()

    def get_queue_length(self) -> int:
        return self.scheduler.get_queue_length()

    async def get_sync_status(self) -> Dict[str, Any]:
        """Get current sync status."""
        return {
            "enabled": await self.lifecycle.is_enabled(),
            "last_updated": await self.store.get(StoreKey.LAST_UPDATED),
            "sync_in_progress": self.queue.in_flight is not None,
            "queue": self.queue.get_queue_stats(),
        }
