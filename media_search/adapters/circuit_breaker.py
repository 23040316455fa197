"""Circuit breaker for the primary index.

Once the primary index fails ``failure_threshold`` times in a row the breaker
opens and searches go straight to the fallback backend until
``recovery_timeout`` seconds have passed; the next call then probes the
primary again (HALF_OPEN).
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, Union

import structlog

logger = structlog.get_logger("search_service.circuit_breaker")

ExceptionTypes = Union[Type[BaseException], Tuple[Type[BaseException], ...]]


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, reject calls
    HALF_OPEN = "half_open"  # Probing whether the upstream recovered


class CircuitBreakerError(Exception):
    """Circuit breaker is open."""
    pass


class CircuitBreaker:
    """Async circuit breaker around a single upstream.

    Only one call is let through as the HALF_OPEN probe; concurrent callers
    are rejected until it settles.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exception: ExceptionTypes = Exception,
        ignored_exception: ExceptionTypes = (),
        name: str = "circuit_breaker"
    ):
        """Configure a circuit breaker.

        Parameters
        - failure_threshold: Consecutive failures before opening the breaker
        - recovery_timeout: Seconds to wait before a HALF_OPEN probe
        - expected_exception: Exception type(s) counted as failures
        - ignored_exception: Exception type(s) showing the upstream answered;
          re-raised but counted as success
        - name: Identifier for logs and health output
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.ignored_exception = ignored_exception
        self.name = name

        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self.state = CircuitBreakerState.CLOSED
        self._probe_in_flight = False
        self._lock = asyncio.Lock()

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """Await ``func(*args, **kwargs)`` unless the breaker is open."""
        async with self._lock:
            if self.state == CircuitBreakerState.OPEN:
                if self._should_attempt_reset():
                    self.state = CircuitBreakerState.HALF_OPEN
                    logger.info("Circuit breaker transitioning to HALF_OPEN", name=self.name)
                else:
                    raise CircuitBreakerError(f"Circuit breaker {self.name} is open")

            probing = self.state == CircuitBreakerState.HALF_OPEN
            if probing:
                if self._probe_in_flight:
                    raise CircuitBreakerError(f"Circuit breaker {self.name} is probing")
                self._probe_in_flight = True

        try:
            result = await func(*args, **kwargs)
        except self.ignored_exception:
            await self._on_success()
            raise
        except self.expected_exception:
            await self._on_failure()
            raise
        except BaseException:
            # Anything else leaves CLOSED untouched but must not strand a probe.
            if probing:
                await self._on_failure()
            raise

        await self._on_success()
        return result

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_time is None:
            return True
        return (time.time() - self.last_failure_time) >= self.recovery_timeout

    async def _on_success(self) -> None:
        async with self._lock:
            if self.state == CircuitBreakerState.HALF_OPEN:
                self.state = CircuitBreakerState.CLOSED
                logger.info("Circuit breaker reset to CLOSED", name=self.name)
            self.failure_count = 0
            self._probe_in_flight = False

    async def _on_failure(self) -> None:
        async with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.time()
            self._probe_in_flight = False

            # A failed probe reopens immediately.
            if (
                self.state == CircuitBreakerState.HALF_OPEN
                or self.failure_count >= self.failure_threshold
            ):
                if self.state != CircuitBreakerState.OPEN:
                    logger.warning(
                        "Circuit breaker opened due to failures",
                        name=self.name,
                        failure_count=self.failure_count,
                        threshold=self.failure_threshold
                    )
                self.state = CircuitBreakerState.OPEN

    def get_state(self) -> CircuitBreakerState:
        """Get current circuit breaker state."""
        return self.state

    def get_stats(self) -> dict:
        """Get circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self.last_failure_time,
            "recovery_timeout": self.recovery_timeout
        }
