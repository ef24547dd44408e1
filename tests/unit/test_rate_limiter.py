from loccal.middleware.rate_limiter import MinimumIntervalRateLimiter


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_first_call_admitted_then_refused_within_interval():
    clock = FakeClock()
    limiter = MinimumIntervalRateLimiter(1.0, clock=clock)

    assert limiter.try_acquire() is True
    clock.now += 0.5
    assert limiter.try_acquire() is False


def test_refused_calls_do_not_extend_the_wait():
    clock = FakeClock()
    limiter = MinimumIntervalRateLimiter(1.0, clock=clock)
    limiter.try_acquire()

    clock.now += 0.9
    assert limiter.try_acquire() is False
    clock.now += 0.1
    assert limiter.try_acquire() is True


def test_retry_after_rounds_up():
    clock = FakeClock()
    limiter = MinimumIntervalRateLimiter(2.5, clock=clock)

    assert limiter.retry_after() == 1
    limiter.try_acquire()
    clock.now += 0.2
    assert limiter.retry_after() == 3


def test_reset():
    clock = FakeClock()
    limiter = MinimumIntervalRateLimiter(1.0, clock=clock)
    limiter.try_acquire()

    limiter.reset()

    assert limiter.try_acquire() is True
