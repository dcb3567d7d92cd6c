"""Pending-call correlation store."""

from toolrelay.pending.models import (
    Claim,
    ClaimStatus,
    PendingCall,
    PendingCallStatus,
)
from toolrelay.pending.store import PendingCallStore
from toolrelay.pending.stores.inmemory import InMemoryPendingCallStore

__all__ = [
    "Claim",
    "ClaimStatus",
    "InMemoryPendingCallStore",
    "PendingCall",
    "PendingCallStatus",
    "PendingCallStore",
]
