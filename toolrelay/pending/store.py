"""PendingCallStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import Any

from toolrelay.pending.models import Claim, PendingCall


class PendingCallStore(ABC):
    """Correlation table of outstanding tool calls, keyed by tool call id.

    Implementations must make claim() and remove_where() atomic with
    respect to each other so a correlated call cannot also be swept, and
    must never perform external I/O while holding internal locks.
    """

    @abstractmethod
    async def put(self, call: PendingCall) -> None:
        """Insert a call, overwriting any entry with the same id."""
        pass

    @abstractmethod
    async def get(self, call_id: str) -> PendingCall | None:
        """Get a snapshot of a call by id."""
        pass

    @abstractmethod
    async def delete(self, call_id: str) -> bool:
        """Delete a call. Returns whether something was removed."""
        pass

    @abstractmethod
    async def update(self, call_id: str, **changes: Any) -> PendingCall | None:
        """Apply changes to the mutable fields of a call.

        Returns the updated snapshot, or None if the call is gone.
        """
        pass

    @abstractmethod
    async def list_all(self) -> list[PendingCall]:
        """Snapshot of every stored call (order not significant)."""
        pass

    @abstractmethod
    async def remove_where(self, predicate: Callable[[PendingCall], bool]) -> list[PendingCall]:
        """Atomically remove and return every call matching predicate."""
        pass

    @abstractmethod
    async def claim(self, call_id: str, verify: Callable[[PendingCall], None]) -> Claim:
        """Atomically look up, verify, mark processed and delete a call.

        verify raises to reject the claim; the store is left untouched.
        """
        pass

    @abstractmethod
    async def count_for_run(self, thread_id: str, run_id: str) -> int:
        """Number of stored calls belonging to a run."""
        pass

    @abstractmethod
    async def was_processed(self, call_id: str) -> bool:
        """Whether a call id was claimed recently."""
        pass

    @abstractmethod
    async def prune_processed(self, older_than: datetime) -> int:
        """Forget processed ids claimed before older_than."""
        pass
