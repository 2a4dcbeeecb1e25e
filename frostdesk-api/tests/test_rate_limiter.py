import pytest

from app.services.rate_limiter import TokenBucket


class TestTokenBucket:
    def test_never_grants_more_than_capacity_at_one_instant(self):
        bucket = TokenBucket(capacity=3, refill_per_second=1.0, now=100.0)

        granted = [bucket.consume(now=100.0) for _ in range(5)]

        assert granted == [True, True, True, False, False]

    def test_refills_with_time(self):
        bucket = TokenBucket(capacity=2, refill_per_second=0.5, now=0.0)
        assert bucket.consume(now=0.0)
        assert bucket.consume(now=0.0)
        assert not bucket.consume(now=1.0)

        assert bucket.consume(now=2.0)

    def test_refill_is_capped(self):
        bucket = TokenBucket(capacity=2, refill_per_second=10.0, now=0.0)
        assert bucket.refill(now=60.0) == 2.0

    def test_clock_going_backwards_does_not_refill(self):
        bucket = TokenBucket(capacity=1, refill_per_second=1.0, now=10.0)
        assert bucket.consume(now=10.0)
        assert not bucket.consume(now=5.0)

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            TokenBucket(capacity=0, refill_per_second=1.0)
