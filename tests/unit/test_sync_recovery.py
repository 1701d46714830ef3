"""
Failed Sync Recovery Tests

Tests for:
- Error classification and wrapping
- Queue clearing and local mirror rebuild
- Disabling on disable-worthy errors
- Completion signal settlement
"""

import asyncio

import pytest

from src.sync_engine.exceptions import (
    ClientDataMissingError,
    ContainerChangedError,
    DomainRecordNotFoundError,
    NoDataFoundError,
    RateLimitedError,
    SyncFailedError,
    SyncRemovedError,
    SyncUncommittedError,
    TransportUnreachableError,
    is_disable_worthy,
    is_refresh_worthy,
)
from src.sync_engine.models import CompletionSignal, MessageCommand, StoreKey, SyncRequest, SyncType


def failed_request(sync_type: SyncType, **kwargs) -> SyncRequest:
    request = SyncRequest(type=sync_type, unique_id="failed-1", **kwargs)
    request.completion = CompletionSignal()
    return request


async def outcome(request: SyncRequest) -> BaseException:
    with pytest.raises(Exception) as exc_info:
        await request.completion.wait()
    return exc_info.value


class TestErrorSets:
    """TEST: Error kinds map to the right recovery sets"""

    def test_disable_worthy(self):
        """Removed, missing client data, no data and rate limiting disable sync."""
        assert is_disable_worthy(SyncRemovedError())
        assert is_disable_worthy(ClientDataMissingError())
        assert is_disable_worthy(NoDataFoundError())
        assert is_disable_worthy(RateLimitedError())
        assert not is_disable_worthy(ContainerChangedError())
        assert not is_disable_worthy(None)

    def test_refresh_worthy(self):
        """Local mirror problems trigger a rebuild."""
        assert is_refresh_worthy(ContainerChangedError())
        assert is_refresh_worthy(DomainRecordNotFoundError())
        assert not is_refresh_worthy(RateLimitedError())

    def test_wrapped_cause_is_kept(self):
        """Wrapping keeps the original error."""
        original = ValueError("boom")
        err = SyncFailedError(cause=original)

        assert err.cause is original
        assert err.__cause__ is original
        assert str(err) == "Sync failed"


class TestClassification:
    """TEST: Failures are classified before acting"""

    @pytest.mark.asyncio
    async def test_offline_remote_becomes_uncommitted(self, engine):
        """Offline with changes to push: uncommitted, nothing else happens."""
        _, queued = await self._queue_local(engine)
        request = failed_request(SyncType.REMOTE)

        final = await engine.recovery.handle_failed_sync(request, TransportUnreachableError())

        assert isinstance(final, SyncUncommittedError)
        assert isinstance(final.cause, TransportUnreachableError)
        assert await outcome(request) is final
        assert engine.get_queue_length() == 1
        assert await engine.store.get(StoreKey.LAST_UPDATED) is None

        queued.cancel()
        await asyncio.gather(queued, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_offline_local_is_not_uncommitted(self, engine):
        """Offline on a Local request keeps the transport error."""
        request = failed_request(SyncType.LOCAL)

        final = await engine.recovery.handle_failed_sync(request, TransportUnreachableError())

        assert isinstance(final, TransportUnreachableError)
        assert await engine.lifecycle.is_enabled() is True

    @pytest.mark.asyncio
    async def test_unknown_error_is_wrapped(self, engine):
        """Errors from outside the engine become SyncFailedError."""
        request = failed_request(SyncType.LOCAL)
        original = KeyError("missing")

        final = await engine.recovery.handle_failed_sync(request, original)

        assert isinstance(final, SyncFailedError)
        assert final.cause is original
        assert await outcome(request) is final

    @pytest.mark.asyncio
    async def test_status_refreshed(self, engine):
        """The status indicator is refreshed on every failure."""
        request = failed_request(SyncType.LOCAL)

        await engine.recovery.handle_failed_sync(request, SyncFailedError())

        assert (None, None) in engine.platform.statuses
        assert (True, None) in engine.platform.statuses

    @pytest.mark.asyncio
    async def test_disabled_skips_recovery(self, make_engine, make_provider):
        """With sync disabled nothing is cleared, rebuilt or disabled."""
        provider = make_provider()
        engine = make_engine([provider], enabled=False)
        request = failed_request(SyncType.REMOTE)

        final = await engine.recovery.handle_failed_sync(request, RateLimitedError())

        assert isinstance(final, RateLimitedError)
        assert provider.disable_calls == 0
        assert engine.platform.rebuilds == 0
        assert await engine.store.get(StoreKey.LAST_UPDATED) is None

    @staticmethod
    async def _queue_local(engine):
        task = asyncio.ensure_future(
            engine.enqueue(SyncRequest(type=SyncType.LOCAL), run_immediately=False)
        )
        for _ in range(5):
            await asyncio.sleep(0)
        return engine.get_current_sync(), task


class TestRecoveryActions:
    """TEST: Recovery actions follow the classification"""

    @pytest.mark.asyncio
    async def test_no_data_found_becomes_sync_removed(self, engine, provider):
        """No data found is reported as sync removed and disables sync."""
        request = failed_request(SyncType.LOCAL)

        final = await engine.recovery.handle_failed_sync(request, NoDataFoundError())

        assert isinstance(final, SyncRemovedError)
        assert isinstance(await outcome(request), SyncRemovedError)
        assert provider.disable_calls == 1
        assert await engine.lifecycle.is_enabled() is False

    @pytest.mark.asyncio
    async def test_remote_failure_clears_queue(self, engine):
        """A failed Remote request drops queued work and bumps the version marker."""
        queued = asyncio.ensure_future(
            engine.enqueue(SyncRequest(type=SyncType.LOCAL), run_immediately=False)
        )
        for _ in range(5):
            await asyncio.sleep(0)
        request = failed_request(SyncType.REMOTE)

        final = await engine.recovery.handle_failed_sync(request, SyncFailedError())

        assert engine.get_queue_length() == 0
        assert await engine.store.get(StoreKey.LAST_UPDATED) is not None
        assert engine.platform.rebuilds == 0
        with pytest.raises(SyncFailedError):
            await queued
        assert await outcome(request) is final

    @pytest.mark.asyncio
    async def test_local_failure_keeps_queue(self, engine):
        """A failed Local request leaves the queue alone and rebuilds nothing."""
        request = failed_request(SyncType.LOCAL)

        await engine.recovery.handle_failed_sync(request, ContainerChangedError())

        assert engine.platform.rebuilds == 0
        assert await engine.store.get(StoreKey.LAST_UPDATED) is None

    @pytest.mark.asyncio
    async def test_refresh_worthy_rebuilds_local_mirror(self, engine):
        """Refresh-worthy errors on Remote requests rebuild the local mirror."""
        request = failed_request(SyncType.REMOTE)
        engine.queue.enqueue(request)
        engine.queue.claim_next()

        final = await engine.recovery.handle_failed_sync(request, ContainerChangedError())

        assert isinstance(final, ContainerChangedError)
        assert engine.platform.rebuilds == 1
        assert engine.queue.in_flight is None
        assert await engine.lifecycle.is_enabled() is True

    @pytest.mark.asyncio
    async def test_rebuild_failure_overrides_error(self, engine, provider):
        """A failed rebuild replaces the original error and may disable sync."""
        engine.platform.rebuild_error = RateLimitedError()
        request = failed_request(SyncType.REMOTE)

        final = await engine.recovery.handle_failed_sync(request, ContainerChangedError())

        assert isinstance(final, RateLimitedError)
        assert await outcome(request) is final
        assert provider.disable_calls == 1

    @pytest.mark.asyncio
    async def test_raw_rebuild_failure_is_wrapped(self, engine):
        """Rebuild errors from outside the engine are wrapped too."""
        engine.platform.rebuild_error = OSError("disk full")
        request = failed_request(SyncType.REMOTE)

        final = await engine.recovery.handle_failed_sync(request, ContainerChangedError())

        assert isinstance(final, SyncFailedError)
        assert isinstance(final.cause, OSError)

    @pytest.mark.asyncio
    async def test_rate_limited_disables(self, engine, provider):
        """Rate limiting stops automatic syncing."""
        request = failed_request(SyncType.LOCAL, command=MessageCommand.SYNC_DATA)

        await engine.recovery.handle_failed_sync(request, RateLimitedError())

        assert provider.disable_calls == 1
        assert engine.platform.polling_stops == 1

    @pytest.mark.asyncio
    async def test_change_info_logged(self, engine, caplog):
        """Change info of the failed request is logged."""
        request = failed_request(SyncType.REMOTE, change_info={"type": "create", "id": 7})

        with caplog.at_level("INFO", logger="src.sync_engine"):
            await engine.recovery.handle_failed_sync(request, SyncFailedError())

        assert "Sync failed-1 failed" in caplog.text
        assert "'type': 'create'" in caplog.text

    @pytest.mark.asyncio
    async def test_signal_settles_once(self, engine):
        """An already settled request keeps its first outcome."""
        request = failed_request(SyncType.REMOTE)
        request.resolve()

        await engine.recovery.handle_failed_sync(request, SyncFailedError())

        await request.completion.wait()
