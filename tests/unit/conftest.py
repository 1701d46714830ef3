"""
Shared fakes for the sync engine tests.

The fakes record every call so tests can assert on side effects.
"""

import asyncio
from typing import Any, List, Optional

import pytest

from src.sync_engine.api import ApiClient
from src.sync_engine.engine import SyncEngine
from src.sync_engine.models import LastUpdatedResponse, ProviderResult, StoreKey
from src.sync_engine.platform import Platform
from src.sync_engine.providers import SyncProvider
from src.sync_engine.store import MemoryStore


class FakeProvider(SyncProvider):
    """Provider returning a fixed result, or raising a fixed error."""

    def __init__(
        self,
        key: str = "bookmarks",
        result: Optional[ProviderResult] = None,
        error: Optional[BaseException] = None,
    ):
        self.key = key
        self.result = result if result is not None else ProviderResult(data={"items": []})
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.enable_calls = 0
        self.disable_calls = 0
        self.processed: List[Any] = []
        self.remote_failures: List[Any] = []
        self.active = 0
        self.max_active = 0

    async def enable(self) -> None:
        self.enable_calls += 1

    async def disable(self) -> None:
        self.disable_calls += 1

    async def process_sync(self, request) -> ProviderResult:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            self.processed.append(request)
            if self.error is not None:
                raise self.error
            return self.result
        finally:
            self.active -= 1

    async def handle_update_remote_failed(self, err, last_data, current_sync) -> None:
        self.remote_failures.append((err, last_data, current_sync))


class FakeApi(ApiClient):
    """API client answering from memory."""

    def __init__(self, last_updated: str = "2026-01-01T00:00:00Z"):
        self.last_updated = last_updated
        self.commit_response = "2026-02-01T00:00:00Z"
        self.commits: List[Any] = []
        self.get_error: Optional[BaseException] = None
        self.commit_error: Optional[BaseException] = None

    async def get_last_updated(self) -> LastUpdatedResponse:
        if self.get_error is not None:
            raise self.get_error
        return LastUpdatedResponse(last_updated=self.last_updated)

    async def commit_update(self, payload, last_updated=None) -> LastUpdatedResponse:
        if self.commit_error is not None:
            raise self.commit_error
        self.commits.append(payload)
        self.last_updated = self.commit_response
        return LastUpdatedResponse(last_updated=self.commit_response)


class FakePlatform(Platform):
    """Platform recording polling, status and rebuild calls."""

    def __init__(self):
        self.polling = False
        self.polling_starts = 0
        self.polling_stops = 0
        self.statuses: List[Any] = []
        self.rebuilds = 0
        self.rebuild_error: Optional[BaseException] = None

    async def polling_start(self) -> None:
        self.polling_starts += 1
        self.polling = True

    async def polling_stop(self) -> None:
        self.polling_stops += 1
        self.polling = False

    async def status_refresh(self, enabled=None, sync_type=None) -> None:
        self.statuses.append((enabled, sync_type))

    async def rebuild_local_mirror(self) -> None:
        self.rebuilds += 1
        if self.rebuild_error is not None:
            raise self.rebuild_error


def build_engine(providers=None, enabled: bool = True, last_updated: Optional[str] = None):
    initial = {StoreKey.SYNC_ENABLED: enabled, StoreKey.PASSWORD: "secret", StoreKey.SYNC_VERSION: "1.0"}
    if last_updated is not None:
        initial[StoreKey.LAST_UPDATED] = last_updated
    store = MemoryStore(initial)
    api = FakeApi()
    platform = FakePlatform()
    providers = providers if providers is not None else [FakeProvider()]
    return SyncEngine(store, api, platform, providers)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def engine(provider):
    return build_engine([provider])


@pytest.fixture
def make_engine():
    return build_engine


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def make_api():
    return FakeApi
