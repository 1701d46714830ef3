"""
Sync Errors

Error kinds raised by the sync engine, its providers and its collaborators.

Every error that leaves the engine is a SyncError. Raw errors from
transports or providers are wrapped (the original is kept as ``cause``).
"""

from typing import Optional


class SyncError(Exception):
    """Base class for all sync engine errors."""

    default_message = "Sync error"

    def __init__(self, message: Optional[str] = None, *, cause: Optional[BaseException] = None):
        super().__init__(message or self.default_message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


# Transport / remote

class TransportUnreachableError(SyncError):
    default_message = "Remote service unreachable"


class RateLimitedError(SyncError):
    default_message = "Too many requests"


class NoDataFoundError(SyncError):
    default_message = "No data found for sync id"


class SyncRemovedError(SyncError):
    """The remote sync record no longer exists."""

    default_message = "Sync has been removed"


class RemoteDataOutOfSyncError(SyncError):
    default_message = "Remote data out of sync"


class ApiRequestError(SyncError):
    """Remote service answered with an unexpected status."""

    default_message = "Remote request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code


# Local mirror / mapping

class ClientMappingMissingError(SyncError):
    default_message = "Client id mapping not found"


class ContainerChangedError(SyncError):
    default_message = "Local container changed"


class LocalMirrorCreateFailedError(SyncError):
    default_message = "Failed to create local records"


class LocalMirrorReadFailedError(SyncError):
    default_message = "Failed to read local records"


class LocalMirrorRemoveFailedError(SyncError):
    default_message = "Failed to remove local records"


class LocalRecordNotFoundError(SyncError):
    default_message = "Local record not found"


class DomainRecordNotFoundError(SyncError):
    default_message = "Record not found"


class ClientDataMissingError(SyncError):
    default_message = "Client data missing"


# Engine

class SyncFailedError(SyncError):
    default_message = "Sync failed"


class SyncDisabledError(SyncError):
    default_message = "Sync is disabled"


class SyncUncommittedError(SyncError):
    """Changes were not committed; the caller decides whether to re-queue."""

    default_message = "Sync uncommitted"


DISABLE_SYNC_ERRORS = (
    SyncRemovedError,
    ClientDataMissingError,
    NoDataFoundError,
    RateLimitedError,
)

REFRESH_SYNCED_DATA_ERRORS = (
    ClientMappingMissingError,
    ContainerChangedError,
    RemoteDataOutOfSyncError,
    LocalMirrorCreateFailedError,
    LocalMirrorReadFailedError,
    LocalMirrorRemoveFailedError,
    LocalRecordNotFoundError,
    DomainRecordNotFoundError,
)


def is_disable_worthy(err: Optional[BaseException]) -> bool:
    """Whether the error should stop all automatic syncing."""
    return isinstance(err, DISABLE_SYNC_ERRORS)


def is_refresh_worthy(err: Optional[BaseException]) -> bool:
    """Whether the error should trigger a rebuild of the local mirror."""
    return isinstance(err, REFRESH_SYNCED_DATA_ERRORS)
