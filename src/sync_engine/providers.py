"""
Sync Providers

Pluggable reconciliation providers and the coordinator that fans a sync
request out to all of them.

Aggregation rule: a remote commit is wanted only if every provider that
expressed an opinion wants it. Providers returning ``None`` abstain; with
no opinions at all the answer is True.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from .models import ProviderResult, SyncRequest

_LOGGER = logging.getLogger(__name__)


class SyncProvider(ABC):
    """
    Base class for sync providers.

    ``key`` identifies the provider's slice of the commit payload and of
    the retained results; it must be unique among registered providers.
    """

    key: str = ""

    @abstractmethod
    async def enable(self) -> None:
        ...

    @abstractmethod
    async def disable(self) -> None:
        ...

    @abstractmethod
    async def process_sync(self, request: SyncRequest) -> ProviderResult:
        ...

    @abstractmethod
    async def handle_update_remote_failed(
        self, err: BaseException, last_data: Any, current_sync: Optional[SyncRequest]
    ) -> None:
        ...


class ProviderCoordinator:
    """
    Runs every registered provider against the same request.

    Usage:
        coordinator = ProviderCoordinator([bookmarks_provider])
        update_remote = await coordinator.process_sync(request)
        payload = coordinator.commit_payload()
    """

    def __init__(self, providers: Iterable[SyncProvider]):
        self.providers: List[SyncProvider] = list(providers)
        keys = [provider.key for provider in self.providers]
        if len(set(keys)) != len(keys) or not all(keys):
            raise ValueError(f"Provider keys must be unique and non-empty: {keys}")
        self.last_results: Dict[str, ProviderResult] = {}

    async def enable_all(self) -> None:
        await asyncio.gather(*(provider.enable() for provider in self.providers))

    async def disable_all(self) -> None:
        await asyncio.gather(*(provider.disable() for provider in self.providers))

    async def process_sync(self, request: SyncRequest) -> bool:
        """
        Fan the request out to all providers and aggregate their verdicts.

        Fails fast: the first provider error cancels the others and
        propagates; retained results are left untouched.

        Returns:
            Whether the remote copy should be updated
        """
        tasks = [asyncio.ensure_future(provider.process_sync(request)) for provider in self.providers]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        self.last_results = {
            provider.key: result for provider, result in zip(self.providers, results)
        }
        return aggregate_update_remote(results)

    def commit_payload(self) -> Dict[str, Any]:
        """Provider data to push to the remote, keyed by provider."""
        return {
            key: result.data
            for key, result in self.last_results.items()
            if result.data is not None
        }

    async def handle_update_remote_failed(
        self, err: BaseException, current_sync: Optional[SyncRequest]
    ) -> None:
        """Let each provider clean up after a failed remote commit."""
        await asyncio.gather(*(
            provider.handle_update_remote_failed(err, self._last_data(provider), current_sync)
            for provider in self.providers
        ))

    def _last_data(self, provider: SyncProvider) -> Any:
        result = self.last_results.get(provider.key)
        return result.data if result else None


def aggregate_update_remote(results: Iterable[ProviderResult]) -> bool:
    update_remote = True
    for result in results:
        if result.should_update_remote is None:
            continue
        update_remote = update_remote and bool(result.should_update_remote)
    return update_remote
