"""
Sync Models

Data types shared by the sync engine components:
- SyncType / MessageCommand / StoreKey enums
- SyncRequest, the queued unit of work
- CompletionSignal, a single-settlement handle observed by the caller
- ProviderResult and LastUpdatedResponse value objects
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class SyncType(Enum):
    """Types of sync requests."""
    LOCAL = "local"  # Remote changed, apply to local
    REMOTE = "remote"  # Local changed, push to remote
    LOCAL_AND_REMOTE = "local_and_remote"
    UPGRADE = "upgrade"
    CANCEL = "cancel"


class MessageCommand(Enum):
    """Commands that can originate a sync request."""
    SYNC_DATA = "sync_data"
    RESTORE_DATA = "restore_data"
    UPGRADE_SYNC = "upgrade_sync"


class StoreKey(Enum):
    """Keys the engine reads and writes in the store."""
    LAST_UPDATED = "lastUpdated"
    SYNC_ENABLED = "syncEnabled"
    PASSWORD = "password"
    SYNC_VERSION = "syncVersion"


def generate_unique_id() -> str:
    """Generate a short unique id for a sync request."""
    return uuid.uuid4().hex[:16]


class CompletionSignal:
    """
    Settles exactly once, with success or with an error.

    Later settlement attempts are ignored and reported as False so the
    first outcome is the one the caller observes.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._future.add_done_callback(_mark_retrieved)

    @property
    def settled(self) -> bool:
        return self._future.done()

    def resolve(self) -> bool:
        if self._future.done():
            return False
        self._future.set_result(None)
        return True

    def reject(self, err: BaseException) -> bool:
        if self._future.done():
            return False
        self._future.set_exception(err)
        return True

    async def wait(self) -> None:
        await asyncio.shield(self._future)


def _mark_retrieved(future: asyncio.Future) -> None:
    # Nobody is obliged to await a signal; keep asyncio from warning about it.
    if not future.cancelled():
        future.exception()


@dataclass(eq=False)
class SyncRequest:
    """A queued unit of work representing one synchronization attempt."""

    type: SyncType
    unique_id: Optional[str] = None
    command: Optional[MessageCommand] = None
    change_info: Optional[Dict[str, Any]] = None
    completion: Optional[CompletionSignal] = field(default=None, repr=False)

    def resolve(self) -> bool:
        return self.completion.resolve() if self.completion else False

    def reject(self, err: BaseException) -> bool:
        return self.completion.reject(err) if self.completion else False


@dataclass
class ProviderResult:
    """Outcome of one provider processing one request."""

    data: Any = None
    should_update_remote: Optional[bool] = None


@dataclass
class LastUpdatedResponse:
    """Remote version marker returned by the API."""

    last_updated: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LastUpdatedResponse":
        return cls(last_updated=str(data.get("lastUpdated", "")))
