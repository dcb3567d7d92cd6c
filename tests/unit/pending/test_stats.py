"""Tests for pending-call statistics."""

from datetime import UTC, datetime, timedelta

from toolrelay.config.models import DispatchConfig
from toolrelay.pending.models import PendingCallStatus
from toolrelay.pending.stats import compute_statistics


class TestComputeStatistics:
    """Tests for compute_statistics."""

    def test_empty(self, registry) -> None:
        stats = compute_statistics([], registry, DispatchConfig())

        assert stats.total_pending == 0
        assert stats.pending_by_agent == {"brenden": 0, "angel": 0, "nova": 0}
        assert stats.oldest_call_age_seconds == 0
        assert stats.retry_policy == {
            "max_attempts": 5,
            "base_delay_ms": 2000,
            "max_delay_ms": 10000,
        }

    def test_age_buckets_and_counts(self, registry, make_call) -> None:
        now = datetime.now(UTC)
        calls = [
            make_call(id="a", created_at=now - timedelta(seconds=10)),
            make_call(id="b", created_at=now - timedelta(minutes=3)),
            make_call(id="c", created_at=now - timedelta(minutes=20)),
            make_call(
                id="d",
                created_at=now - timedelta(hours=2),
                status=PendingCallStatus.FAILED,
            ),
        ]

        stats = compute_statistics(calls, registry, DispatchConfig(), now=now)

        assert stats.total_pending == 4
        assert stats.pending_by_agent["brenden"] == 4
        assert stats.agents["brenden"].pending_calls == 4
        assert stats.pending_by_status == {"pending": 3, "failed": 1}
        assert stats.pending_by_age.model_dump() == {
            "under_1min": 1,
            "under_5min": 1,
            "under_30min": 1,
            "over_30min": 1,
        }
        assert stats.oldest_call_age_seconds == 7200

    def test_agent_summary_flags(self, registry) -> None:
        stats = compute_statistics([], registry, DispatchConfig())

        assert stats.agents["brenden"].webhook_configured is True
        assert stats.agents["angel"].webhook_configured is False
        assert stats.agents["nova"].webhook_configured is False
