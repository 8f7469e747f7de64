"""
Circuit breaker and retry helpers for database reads.

The breaker guards calls that tend to fail in bursts (lost connections,
database restarts) so callers fail fast instead of piling up requests.
"""

import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import DisconnectionError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATE_CLOSED = "CLOSED"
STATE_OPEN = "OPEN"
STATE_HALF_OPEN = "HALF_OPEN"

TRANSIENT_DB_ERRORS: Tuple[Type[BaseException], ...] = (OperationalError, DisconnectionError)

_NETWORK_MARKERS = ("connection refused", "network error", "could not connect", "timeout expired")


class CircuitOpenError(RuntimeError):
    """Raised when a call is rejected because the circuit is open."""


def is_network_error(exc: BaseException) -> bool:
    if isinstance(exc, (ConnectionError, TimeoutError, DisconnectionError)):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _NETWORK_MARKERS)


class CircuitBreaker:
    """Three-state breaker: CLOSED, OPEN and HALF_OPEN.

    Network-type failures only add half a point to the failure count
    (capped at the threshold) and never open the circuit by themselves.
    """

    def __init__(
        self,
        name: str = "database",
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        network_error: Callable[[BaseException], bool] = is_network_error,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._is_network_error = network_error
        self.failure_count: float = 0
        self.last_failure_time: Optional[float] = None
        self.state = STATE_CLOSED

    def call(self, fn: Callable[[], T]) -> T:
        if self.state == STATE_OPEN:
            elapsed = self._clock() - (self.last_failure_time or 0)
            if elapsed > self.recovery_timeout:
                self.state = STATE_HALF_OPEN
                logger.info("Circuit %s half-open, attempting recovery", self.name)
            else:
                raise CircuitOpenError(f"Circuit {self.name} is OPEN; backend temporarily unavailable")

        try:
            result = fn()
        except Exception as exc:
            if self._is_network_error(exc):
                self.last_failure_time = self._clock()
                self.failure_count = min(self.failure_count + 0.5, self.failure_threshold)
                logger.warning("Circuit %s network failure (count=%s): %s", self.name, self.failure_count, exc)
            else:
                self._on_failure()
            raise
        self._on_success()
        return result

    def _on_success(self) -> None:
        if self.state != STATE_CLOSED:
            logger.info("Circuit %s closed", self.name)
        self.failure_count = 0
        self.state = STATE_CLOSED

    def _on_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = self._clock()
        if self.state == STATE_HALF_OPEN:
            self.state = STATE_OPEN
            logger.warning("Circuit %s recovery failed, back to OPEN", self.name)
        elif self.failure_count >= self.failure_threshold:
            self.state = STATE_OPEN
            logger.warning("Circuit %s opened after %s failures", self.name, self.failure_count)

    def is_available(self) -> bool:
        return self.state != STATE_OPEN

    def reset(self) -> None:
        self.failure_count = 0
        self.last_failure_time = None
        self.state = STATE_CLOSED


def retry_with_backoff(
    fn: Callable[[], T],
    retries: int = 3,
    base_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_DB_ERRORS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call fn, retrying up to `retries` times with delays base, 2*base, 4*base..."""
    attempt = 0
    while True:
        try:
            return fn()
        except retry_on as exc:
            if attempt >= retries:
                raise
            delay = base_delay * (2 ** attempt)
            attempt += 1
            logger.warning("Retry %s/%s in %.1fs after %s", attempt, retries, delay, exc)
            sleep(delay)


db_circuit_breaker = CircuitBreaker()
