"""PendingCallStore implementations."""

from toolrelay.pending.stores.inmemory import InMemoryPendingCallStore

__all__ = ["InMemoryPendingCallStore"]
