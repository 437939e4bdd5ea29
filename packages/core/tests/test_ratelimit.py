"""Tests for the per-user command cooldown."""

from robinrelay_core.ratelimit import RateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_first_command_allowed():
    limiter = RateLimiter(cooldown=5, clock=FakeClock())
    assert limiter.allow("alice") is True


def test_second_command_within_cooldown_denied():
    clock = FakeClock()
    limiter = RateLimiter(cooldown=5, clock=clock)
    limiter.allow("alice")
    clock.now += 4.9
    assert limiter.allow("alice") is False
    assert 0 < limiter.remaining("alice") <= 0.1 + 1e-9


def test_command_after_cooldown_allowed():
    clock = FakeClock()
    limiter = RateLimiter(cooldown=5, clock=clock)
    limiter.allow("alice")
    clock.now += 5
    assert limiter.allow("alice") is True


def test_denied_attempt_does_not_extend_cooldown():
    clock = FakeClock()
    limiter = RateLimiter(cooldown=5, clock=clock)
    limiter.allow("alice")
    clock.now += 3
    limiter.allow("alice")
    clock.now += 2
    assert limiter.allow("alice") is True


def test_users_are_independent():
    limiter = RateLimiter(cooldown=5, clock=FakeClock())
    assert limiter.allow("alice") is True
    assert limiter.allow("bob") is True
    assert limiter.allow("alice") is False


def test_remaining_for_unknown_user_is_zero():
    limiter = RateLimiter(cooldown=5, clock=FakeClock())
    assert limiter.remaining("nobody") == 0.0


def test_stale_entries_evicted():
    clock = FakeClock()
    limiter = RateLimiter(cooldown=5, eviction_factor=2, clock=clock)
    limiter.allow("alice")
    limiter.allow("bob")
    assert len(limiter) == 2

    clock.now += 11
    limiter.allow("carol")

    assert len(limiter) == 1
    assert limiter.remaining("alice") == 0.0
