"""
Failed Sync Recovery

Classifies an error raised while processing the queue and applies the
matching recovery action.

Order of evaluation:
1. Transport unreachable on a change-carrying request -> SyncUncommittedError
2. Unrecognised errors are wrapped in SyncFailedError
3. Status refresh and diagnostics
4. Nothing more when sync is disabled
5. No data found -> SyncRemovedError
6. Otherwise, for non-Local requests: clear the queue, bump the stored
   version marker and rebuild the local mirror for refresh-worthy errors
7. Disable-worthy errors disable sync
8. The failed request's completion signal is rejected with the final error
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .exceptions import (
    NoDataFoundError,
    SyncError,
    SyncFailedError,
    SyncRemovedError,
    SyncUncommittedError,
    TransportUnreachableError,
    is_disable_worthy,
    is_refresh_worthy,
)
from .lifecycle import LifecycleController
from .models import StoreKey, SyncRequest, SyncType
from .platform import Platform
from .queue import SyncQueue
from .store import Store

_LOGGER = logging.getLogger(__name__)


def _as_sync_error(err: BaseException) -> SyncError:
    return err if isinstance(err, SyncError) else SyncFailedError(cause=err)


class RecoveryController:
    """Maps a failed request plus its error onto a recovery action."""

    def __init__(
        self,
        store: Store,
        platform: Platform,
        lifecycle: LifecycleController,
        queue: SyncQueue,
    ):
        self.store = store
        self.platform = platform
        self.lifecycle = lifecycle
        self.queue = queue

    async def handle_failed_sync(
        self, failed_sync: Optional[SyncRequest], err: BaseException
    ) -> SyncError:
        """
        Recover from a failed sync.

        Returns:
            The final (possibly reclassified) error, which is also the
            error the failed request's caller observes.
        """
        sync_type = failed_sync.type if failed_sync else None
        sync_id = failed_sync.unique_id if failed_sync else None

        try:
            await self.platform.status_refresh()

            # Offline with pending changes: let the caller decide whether to re-queue
            if isinstance(err, TransportUnreachableError) and sync_type is not SyncType.LOCAL:
                err = SyncUncommittedError(cause=err)
                _LOGGER.info("Sync %s uncommitted: %s", sync_id, err.cause)
                return err

            err = _as_sync_error(err)

            _LOGGER.warning("Sync %s failed", sync_id)
            _LOGGER.error("%s: %s", type(err).__name__, err, exc_info=err)
            if failed_sync and failed_sync.change_info and failed_sync.change_info.get("type"):
                _LOGGER.info("Change info: %s", failed_sync.change_info)

            sync_enabled = await self.lifecycle.is_enabled()
            await self.lifecycle.set_is_syncing()
            if not sync_enabled:
                return err

            if isinstance(err, NoDataFoundError):
                err = SyncRemovedError(cause=err)
            elif sync_type is not SyncType.LOCAL:
                self.queue.clear_all(err)
                await self.store.set(StoreKey.LAST_UPDATED, datetime.now(timezone.utc).isoformat())
                if is_refresh_worthy(err):
                    self.queue.release()
                    try:
                        await self.platform.rebuild_local_mirror()
                    except Exception as refresh_err:
                        _LOGGER.warning("Local mirror rebuild failed: %s", refresh_err)
                        err = _as_sync_error(refresh_err)

            if is_disable_worthy(err):
                await self.lifecycle.disable()

            return err
        finally:
            if failed_sync is not None:
                failed_sync.reject(_as_sync_error(err))
