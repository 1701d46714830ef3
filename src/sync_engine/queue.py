"""
Sync Queue - Pending Requests and In-Flight Sentinel

Holds the ordered requests waiting to be processed and the single request
currently being processed (if any).

Features:
- Insertion order preserved
- Clearing settles every discarded request so callers never hang
- At most one in-flight request
"""

from collections import deque
from typing import Any, Deque, Dict, List, Optional

from .exceptions import SyncDisabledError
from .models import SyncRequest


class SyncQueue:
    """
    In-memory queue for sync requests.

    Usage:
        queue = SyncQueue()

        queue.enqueue(SyncRequest(type=SyncType.REMOTE))

        request = queue.claim_next()
        ...
        queue.release(request)

    The queue is mutated only by the engine components; callers go through
    the scheduler.
    """

    def __init__(self) -> None:
        self._pending: Deque[SyncRequest] = deque()
        self._in_flight: Optional[SyncRequest] = None

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def in_flight(self) -> Optional[SyncRequest]:
        return self._in_flight

    @property
    def tail(self) -> Optional[SyncRequest]:
        return self._pending[-1] if self._pending else None

    def enqueue(self, request: SyncRequest) -> None:
        self._pending.append(request)

    def claim_next(self) -> SyncRequest:
        """Move the head of the queue into the in-flight slot."""
        self._in_flight = self._pending.popleft()
        return self._in_flight

    def release(self, request: Optional[SyncRequest] = None) -> None:
        """
        Clear the in-flight slot.

        Args:
            request: Only clear if this request still holds the slot
        """
        if request is None or self._in_flight is request:
            self._in_flight = None

    def clear_all(self, reason: Optional[BaseException] = None) -> int:
        """
        Discard every pending request.

        Discarded requests are rejected with ``reason`` (SyncDisabledError
        by default).

        Returns:
            Number of requests discarded
        """
        discarded = list(self._pending)
        self._pending.clear()
        for request in discarded:
            request.reject(reason if reason is not None else SyncDisabledError())
        return len(discarded)

    def pending(self) -> List[SyncRequest]:
        return list(self._pending)

    def get_queue_stats(self) -> Dict[str, Any]:
        """Get queue statistics."""
        by_type: Dict[str, int] = {}
        for request in self._pending:
            by_type[request.type.value] = by_type.get(request.type.value, 0) + 1

        return {
            "total_pending": len(self._pending),
            "by_type": by_type,
            "in_flight": self._in_flight.unique_id if self._in_flight else None,
        }
