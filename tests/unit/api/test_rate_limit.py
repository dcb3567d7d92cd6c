"""Unit tests for rate limiting."""

from fastapi.testclient import TestClient

from toolrelay.api.middleware.rate_limit import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSlidingWindowRateLimiter:
    """Tests for SlidingWindowRateLimiter."""

    def test_allows_requests_under_limit(self) -> None:
        limiter = SlidingWindowRateLimiter(window_seconds=60, clock=FakeClock())

        for i in range(10):
            result = limiter.check("client", 10)
            assert result.allowed, f"Request {i + 1} should be allowed"
            assert result.remaining == 10 - i - 1

    def test_blocks_requests_over_limit(self) -> None:
        limiter = SlidingWindowRateLimiter(window_seconds=60, clock=FakeClock())
        for _ in range(5):
            assert limiter.check("client", 5).allowed

        result = limiter.check("client", 5)

        assert not result.allowed
        assert result.remaining == 0

    def test_limit_resets_after_window(self) -> None:
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(window_seconds=60, clock=clock)
        limiter.check("client", 1)
        assert not limiter.check("client", 1).allowed

        clock.now += 61

        assert limiter.check("client", 1).allowed

    def test_clients_are_independent(self) -> None:
        limiter = SlidingWindowRateLimiter(window_seconds=60, clock=FakeClock())
        limiter.check("a", 1)

        assert limiter.check("b", 1).allowed

    def test_reset(self) -> None:
        limiter = SlidingWindowRateLimiter(window_seconds=60, clock=FakeClock())
        limiter.check("client", 1)

        limiter.reset("client")

        assert limiter.check("client", 1).allowed


class TestRateLimitMiddleware:
    """Tests for the middleware wired into the app."""

    def test_rejects_over_budget(self, build_app) -> None:
        app, _ = build_app(api={"rate_limit": {"enabled": True, "max_requests": 2}})

        with TestClient(app) as client:
            first = client.get("/api/status")
            client.get("/api/status")
            third = client.get("/api/status")

        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert third.status_code == 429
        assert third.json()["error"]["code"] == "rate_limit_exceeded"
        assert int(third.headers["Retry-After"]) >= 1

    def test_health_not_limited(self, build_app) -> None:
        app, _ = build_app(api={"rate_limit": {"enabled": True, "max_requests": 1}})

        with TestClient(app) as client:
            responses = [client.get("/health") for _ in range(3)]

        assert all(r.status_code == 200 for r in responses)
