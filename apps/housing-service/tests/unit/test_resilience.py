import pytest
from sqlalchemy.exc import OperationalError

from housing.utils.resilience import (
    STATE_CLOSED,
    STATE_HALF_OPEN,
    STATE_OPEN,
    CircuitBreaker,
    CircuitOpenError,
    retry_with_backoff,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _fail():
    raise ValueError("boom")


def _network_fail():
    raise ConnectionError("connection refused")


class TestCircuitBreaker:
    def _breaker(self, clock):
        return CircuitBreaker(name="test", failure_threshold=3, recovery_timeout=30, clock=clock)

    def test_opens_after_threshold(self):
        breaker = self._breaker(FakeClock())
        for _ in range(3):
            with pytest.raises(ValueError):
                breaker.call(_fail)
        assert breaker.state == STATE_OPEN
        with pytest.raises(CircuitOpenError):
            breaker.call(lambda: "never called")

    def test_half_open_after_timeout_then_closes_on_success(self):
        clock = FakeClock()
        breaker = self._breaker(clock)
        for _ in range(3):
            with pytest.raises(ValueError):
                breaker.call(_fail)
        clock.now += 31
        assert breaker.call(lambda: "ok") == "ok"
        assert breaker.state == STATE_CLOSED
        assert breaker.failure_count == 0

    def test_failure_in_half_open_reopens(self):
        clock = FakeClock()
        breaker = self._breaker(clock)
        for _ in range(3):
            with pytest.raises(ValueError):
                breaker.call(_fail)
        clock.now += 31
        with pytest.raises(ValueError):
            breaker.call(_fail)
        assert breaker.state == STATE_OPEN

    def test_network_errors_count_half_and_never_open(self):
        breaker = self._breaker(FakeClock())
        for _ in range(10):
            with pytest.raises(ConnectionError):
                breaker.call(_network_fail)
        assert breaker.failure_count == 3
        assert breaker.state == STATE_CLOSED
        assert breaker.is_available() is True

    def test_reset(self):
        breaker = self._breaker(FakeClock())
        breaker.state = STATE_HALF_OPEN
        breaker.failure_count = 2
        breaker.reset()
        assert breaker.state == STATE_CLOSED
        assert breaker.failure_count == 0


class TestRetryWithBackoff:
    def test_retries_transient_errors_with_exponential_delays(self):
        delays = []
        attempts = {"n": 0}

        def flaky():
            attempts["n"] += 1
            if attempts["n"] < 3:
                raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))
            return "ok"

        assert retry_with_backoff(flaky, retries=3, base_delay=1.0, sleep=delays.append) == "ok"
        assert delays == [1.0, 2.0]

    def test_gives_up_after_retries(self):
        delays = []

        def always_down():
            raise OperationalError("SELECT 1", {}, Exception("down"))

        with pytest.raises(OperationalError):
            retry_with_backoff(always_down, retries=3, base_delay=1.0, sleep=delays.append)
        assert delays == [1.0, 2.0, 4.0]

    def test_other_errors_are_not_retried(self):
        delays = []
        with pytest.raises(ValueError):
            retry_with_backoff(_fail, sleep=delays.append)
        assert delays == []
