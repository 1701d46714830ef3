"""
Sync Lifecycle

Turns syncing on and off, checks the remote for changes and keeps the
status indicator current.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .api import ApiClient
from .models import StoreKey, SyncType
from .platform import Platform
from .providers import ProviderCoordinator
from .queue import SyncQueue
from .store import Store

_LOGGER = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 marker; returns None when unparsable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class LifecycleController:
    """Enabled/disabled state, remote polling and status indicator."""

    def __init__(
        self,
        store: Store,
        api: ApiClient,
        platform: Platform,
        coordinator: ProviderCoordinator,
        queue: SyncQueue,
    ):
        self.store = store
        self.api = api
        self.platform = platform
        self.coordinator = coordinator
        self.queue = queue
        self._providers_enabled = False
        self._lock = asyncio.Lock()

    async def is_enabled(self) -> bool:
        return bool(await self.store.get(StoreKey.SYNC_ENABLED, False))

    async def enable(self) -> None:
        """
        Turn syncing on.

        Repeat calls do not enable providers twice; polling start is
        idempotent on the platform side.
        """
        async with self._lock:
            await asyncio.gather(
                self.store.set(StoreKey.SYNC_ENABLED, True),
                self.platform.polling_start(),
            )
            if not self._providers_enabled:
                await self.coordinator.enable_all()
                self._providers_enabled = True

    async def disable(self) -> None:
        """Turn syncing off, dropping cached credentials and queued work."""
        async with self._lock:
            if not await self.is_enabled():
                return

            await asyncio.gather(
                self.platform.polling_stop(),
                self.store.remove(StoreKey.PASSWORD),
                self.store.remove(StoreKey.SYNC_VERSION),
                self.store.set(StoreKey.SYNC_ENABLED, False),
            )
            await self.coordinator.disable_all()
            self._providers_enabled = False

            await self.set_is_syncing()

            # Cleared last, with no await in between.
            self.queue.clear_all()
            self.queue.release()
            _LOGGER.info("Sync disabled")

    async def check_for_updates(self) -> bool:
        """Whether the remote version marker differs from the stored one."""
        stored_last_updated = await self.store.get(StoreKey.LAST_UPDATED)
        response = await self.api.get_last_updated()

        stored = parse_timestamp(stored_last_updated)
        remote = parse_timestamp(response.last_updated)
        if stored is None:
            updates_available = True
        elif remote is None:
            updates_available = str(stored_last_updated) != response.last_updated
        else:
            updates_available = stored != remote

        if updates_available:
            _LOGGER.info(
                "Updates available, local:%s remote:%s",
                stored.isoformat() if stored else "none",
                remote.isoformat() if remote else response.last_updated,
            )
        return updates_available

    async def set_is_syncing(self, sync_type: Optional[SyncType] = None) -> None:
        if sync_type is not None:
            await self.platform.status_refresh(None, sync_type)
            return

        await self.platform.status_refresh(await self.is_enabled())
