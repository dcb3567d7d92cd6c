"""Per-run parking of correlated tool outputs."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from toolrelay.correlation.models import CorrelatedOutcome
from toolrelay.providers.models import ToolOutput

RunKey = tuple[str, str]


@dataclass
class _Batch:
    outcomes: dict[str, CorrelatedOutcome] = field(default_factory=dict)
    opened_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    submitting: bool = False

    def outputs(self) -> list[ToolOutput]:
        return [
            ToolOutput(tool_call_id=outcome.tool_call_id, output=outcome.output)
            for outcome in self.outcomes.values()
        ]


class ResultOutbox:
    """Collects a run's tool outputs until all of them have arrived.

    A paused run accepts its outputs in a single submission, so outputs
    are parked under (thread_id, run_id) and submitted together once no
    pending calls remain for that run. A batch stays parked until its
    submission succeeds: take() hands it out, then either drain() drops
    it or release() makes it available again. Methods do not await and
    are therefore atomic on the event loop.
    """

    def __init__(self) -> None:
        self._batches: dict[RunKey, _Batch] = {}

    def __len__(self) -> int:
        return len(self._batches)

    def park(self, outcome: CorrelatedOutcome) -> int:
        """Park an output. Returns the number parked for its run."""
        batch = self._batches.setdefault((outcome.thread_id, outcome.run_id), _Batch())
        batch.outcomes[outcome.tool_call_id] = outcome
        return len(batch.outcomes)

    def parked(self, thread_id: str, run_id: str) -> list[ToolOutput]:
        batch = self._batches.get((thread_id, run_id))
        return batch.outputs() if batch else []

    def holding(self, tool_call_id: str) -> CorrelatedOutcome | None:
        """The parked outcome for a tool call, if any batch still holds it."""
        for batch in self._batches.values():
            outcome = batch.outcomes.get(tool_call_id)
            if outcome is not None:
                return outcome
        return None

    def take(self, thread_id: str, run_id: str) -> list[ToolOutput]:
        """Claim a run's batch for submission.

        Returns an empty list when nothing is parked or another caller is
        already submitting the batch.
        """
        batch = self._batches.get((thread_id, run_id))
        if batch is None or batch.submitting:
            return []
        batch.submitting = True
        return batch.outputs()

    def release(self, thread_id: str, run_id: str) -> None:
        """Return a taken batch after a failed submission."""
        batch = self._batches.get((thread_id, run_id))
        if batch is not None:
            batch.submitting = False

    def drain(self, thread_id: str, run_id: str) -> list[ToolOutput]:
        """Remove and return every output parked for a run."""
        batch = self._batches.pop((thread_id, run_id), None)
        return batch.outputs() if batch else []

    def prune(self, older_than: datetime) -> list[RunKey]:
        """Drop batches opened before older_than."""
        stale = [key for key, batch in self._batches.items() if batch.opened_at < older_than]
        for key in stale:
            del self._batches[key]
        return stale
