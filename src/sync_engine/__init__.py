# Sync engine: keeps a local data set consistent with its remote copy
# Handles request queueing, provider fan-out, remote commits and failure recovery

from .api import ApiClient, HttpApiClient
from .config import SyncConfig
from .engine import SyncEngine
from .exceptions import (
    SyncError,
    SyncDisabledError,
    SyncFailedError,
    SyncRemovedError,
    SyncUncommittedError,
    TransportUnreachableError,
)
from .lifecycle import LifecycleController
from .log import setup_logging
from .models import MessageCommand, ProviderResult, StoreKey, SyncRequest, SyncType
from .platform import AutomaticUpdates, DefaultPlatform, Platform
from .providers import ProviderCoordinator, SyncProvider
from .queue import SyncQueue
from .recovery import RecoveryController
from .scheduler import SyncScheduler
from .store import JsonFileStore, MemoryStore, Store

__all__ = [
    "ApiClient",
    "HttpApiClient",
    "SyncConfig",
    "SyncEngine",
    "SyncError",
    "SyncDisabledError",
    "SyncFailedError",
    "SyncRemovedError",
    "SyncUncommittedError",
    "TransportUnreachableError",
    "LifecycleController",
    "setup_logging",
    "MessageCommand",
    "ProviderResult",
    "StoreKey",
    "SyncRequest",
    "SyncType",
    "AutomaticUpdates",
    "DefaultPlatform",
    "Platform",
    "ProviderCoordinator",
    "SyncProvider",
    "SyncQueue",
    "RecoveryController",
    "SyncScheduler",
    "JsonFileStore",
    "MemoryStore",
    "Store",
]
