from __future__ import annotations
import time
from enum import Enum
from typing import Callable, Any

class CircuitState(Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"

class CircuitBreaker:
    """
    Guards calls to a flaky upstream (the exchange-rate API).

    After `failure_threshold` consecutive failures the circuit opens and
    calls are skipped (returning None) until `recovery_timeout_seconds`
    have passed; the next call then runs half-open and either closes the
    circuit or reopens it.
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        recovery_timeout_seconds: float = 60.0,
        name: str = "default_circuit",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout_seconds = recovery_timeout_seconds
        self.name = name
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = 0.0

    @property
    def is_open(self) -> bool:
        self._update_state()
        return self.state == CircuitState.OPEN

    async def acall(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any | None:
        if self.is_open:
            return None
        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._on_failure()
            return None
        self._on_success()
        return result

    def _update_state(self) -> None:
        if self.state == CircuitState.OPEN:
            if self._clock() - self.last_failure_time > self.recovery_timeout_seconds:
                self.state = CircuitState.HALF_OPEN

    def _on_success(self) -> None:
        self.failure_count = 0
        self.state = CircuitState.CLOSED

    def _on_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = self._clock()
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN

exchange_rate_circuit_breaker = CircuitBreaker(name="exchange_rate_api")
