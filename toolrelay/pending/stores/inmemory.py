"""In-memory implementation of PendingCallStore."""

import asyncio
from collections import OrderedDict
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from toolrelay.observability.logging import get_logger
from toolrelay.observability.metrics import PENDING_CALLS
from toolrelay.pending.models import (
    MUTABLE_FIELDS,
    Claim,
    ClaimStatus,
    PendingCall,
    PendingCallStatus,
)
from toolrelay.pending.store import PendingCallStore

logger = get_logger(__name__)


class InMemoryPendingCallStore(PendingCallStore):
    """Process-scoped pending-call store.

    A dict guarded by an asyncio.Lock. The lock only ever covers
    in-memory work, so holders never suspend while holding it. Contents
    do not survive a restart.
    """

    def __init__(self, processed_id_retention: int = 10_000) -> None:
        self._calls: dict[str, PendingCall] = {}
        # call id -> when it was claimed, oldest first
        self._processed: OrderedDict[str, datetime] = OrderedDict()
        self._processed_id_retention = processed_id_retention
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._calls)

    async def put(self, call: PendingCall) -> None:
        async with self._lock:
            if call.id in self._calls:
                logger.warning(
                    "pending_call_overwritten",
                    tool_call_id=call.id,
                    thread_id=call.thread_id,
                    run_id=call.run_id,
                )
            self._calls[call.id] = call.model_copy(deep=True)
            self._processed.pop(call.id, None)
            PENDING_CALLS.set(len(self._calls))

    async def get(self, call_id: str) -> PendingCall | None:
        call = self._calls.get(call_id)
        return call.model_copy(deep=True) if call else None

    async def delete(self, call_id: str) -> bool:
        async with self._lock:
            removed = self._calls.pop(call_id, None) is not None
            PENDING_CALLS.set(len(self._calls))
            return removed

    async def update(self, call_id: str, **changes: Any) -> PendingCall | None:
        illegal = set(changes) - MUTABLE_FIELDS
        if illegal:
            raise ValueError(f"Cannot update immutable fields: {sorted(illegal)}")

        async with self._lock:
            call = self._calls.get(call_id)
            if call is None:
                return None
            for field, value in changes.items():
                setattr(call, field, value)
            return call.model_copy(deep=True)

    async def list_all(self) -> list[PendingCall]:
        return [call.model_copy(deep=True) for call in list(self._calls.values())]

    async def remove_where(self, predicate: Callable[[PendingCall], bool]) -> list[PendingCall]:
        async with self._lock:
            removed = [call for call in self._calls.values() if predicate(call)]
            for call in removed:
                del self._calls[call.id]
            PENDING_CALLS.set(len(self._calls))
            return removed

    async def claim(self, call_id: str, verify: Callable[[PendingCall], None]) -> Claim:
        async with self._lock:
            call = self._calls.get(call_id)
            if call is None:
                if call_id in self._processed:
                    return Claim(status=ClaimStatus.ALREADY_PROCESSED)
                return Claim(status=ClaimStatus.NOT_FOUND)

            verify(call)

            call.status = PendingCallStatus.PROCESSED
            del self._calls[call_id]
            self._remember_processed(call_id)
            PENDING_CALLS.set(len(self._calls))
            return Claim(status=ClaimStatus.CLAIMED, call=call)

    async def count_for_run(self, thread_id: str, run_id: str) -> int:
        return sum(
            1
            for call in list(self._calls.values())
            if call.thread_id == thread_id and call.run_id == run_id
        )

    async def was_processed(self, call_id: str) -> bool:
        return call_id in self._processed

    async def prune_processed(self, older_than: datetime) -> int:
        async with self._lock:
            stale = [cid for cid, at in self._processed.items() if at < older_than]
            for call_id in stale:
                del self._processed[call_id]
            return len(stale)

    def _remember_processed(self, call_id: str) -> None:
        self._processed[call_id] = datetime.now(UTC)
        self._processed.move_to_end(call_id)
        while len(self._processed) > self._processed_id_retention:
            self._processed.popitem(last=False)
