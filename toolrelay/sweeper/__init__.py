"""Pending-call cleanup sweeper."""

from toolrelay.sweeper.sweeper import CleanupSweeper, SweepReport

__all__ = ["CleanupSweeper", "SweepReport"]
