"""Tests for the in-process sliding-window rate limiter."""

from aidevelo.core.rate_limit import InMemoryRateLimiter, rate_limit_key


class TestInMemoryRateLimiter:
    def test_allows_up_to_limit_then_blocks(self, rate_limiter):
        results = [rate_limiter.check_and_consume("k", 3, 60) for _ in range(4)]
        assert results == [True, True, True, False]

    def test_keys_are_independent(self, rate_limiter):
        for _ in range(2):
            assert rate_limiter.check_and_consume("a", 2, 60)
        assert not rate_limiter.check_and_consume("a", 2, 60)
        assert rate_limiter.check_and_consume("b", 2, 60)

    def test_window_slides(self, rate_limiter, clock):
        assert rate_limiter.check_and_consume("k", 2, 60)
        clock.advance(30)
        assert rate_limiter.check_and_consume("k", 2, 60)
        assert not rate_limiter.check_and_consume("k", 2, 60)

        # first hit leaves the window, second is still inside
        clock.advance(31)
        assert rate_limiter.check_and_consume("k", 2, 60)
        assert not rate_limiter.check_and_consume("k", 2, 60)

    def test_rejected_hits_are_not_recorded(self, rate_limiter, clock):
        assert rate_limiter.check_and_consume("k", 1, 10)
        for _ in range(5):
            assert not rate_limiter.check_and_consume("k", 1, 10)
        clock.advance(11)
        assert rate_limiter.check_and_consume("k", 1, 10)

    def test_idle_keys_survive_until_sweep_interval(self, rate_limiter, clock):
        rate_limiter.check_and_consume("old", 5, 10)
        clock.advance(20)
        rate_limiter.check_and_consume("new", 5, 10)
        assert "old" in rate_limiter._hits

    def test_idle_keys_are_swept_after_interval(self, rate_limiter, clock):
        rate_limiter.check_and_consume("old", 5, 10)
        clock.advance(61)
        rate_limiter.check_and_consume("new", 5, 10)
        assert "old" not in rate_limiter._hits
        assert "new" in rate_limiter._hits

    def test_check_expires_only_its_own_key(self, clock):
        limiter = InMemoryRateLimiter(clock=clock, sweep_interval=3600)
        limiter.check_and_consume("a", 1, 10)
        limiter.check_and_consume("b", 1, 10)
        clock.advance(11)
        assert limiter.check_and_consume("a", 1, 10)
        assert list(limiter._hits["a"]) == [clock.now]
        assert len(limiter._hits["b"]) == 1

    def test_reset_clears_counters(self, rate_limiter):
        rate_limiter.check_and_consume("k", 1, 60)
        rate_limiter.reset()
        assert rate_limiter.check_and_consume("k", 1, 60)

    def test_default_clock_works(self):
        limiter = InMemoryRateLimiter()
        assert limiter.check_and_consume("k", 1, 60)
        assert not limiter.check_and_consume("k", 1, 60)


def test_rate_limit_key_combines_ip_and_operation():
    assert rate_limit_key("10.0.0.1", "session") == "10.0.0.1:session"
    assert rate_limit_key("", "message") == "unknown:message"
