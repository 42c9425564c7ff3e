"""Circuit breaker pattern implementation.

This module provides a circuit breaker that stops calling a news provider
for a while once it keeps failing, instead of spending every sync's time
budget on timeouts.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable

from news_sync.core.config import settings
from news_sync.core.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation, requests pass through
    OPEN = "open"  # Circuit is open, requests are blocked
    HALF_OPEN = "half_open"  # Testing if service has recovered


class CircuitBreaker:
    """Circuit breaker to prevent cascade failures.

    The circuit breaker monitors failures and opens the circuit when
    a failure threshold is reached. After a timeout, it enters a half-open
    state to test if the service has recovered.

    Attributes:
        name: Label used in log messages and errors
        failure_threshold: Number of failures before opening circuit
        timeout: Time in seconds before attempting recovery
        state: Current circuit state
        failure_count: Current count of consecutive failures
        last_failure_time: Timestamp of last failure
        last_success_time: Timestamp of last success
    """

    def __init__(
        self,
        name: str = "default",
        failure_threshold: int | None = None,
        timeout: int | None = None,
        ignore: tuple[type[BaseException], ...] = (),
    ):
        """Initialize circuit breaker.

        Args:
            name: Label used in log messages and errors
            failure_threshold: Number of failures before opening (default from settings)
            timeout: Seconds before attempting recovery (default from settings)
            ignore: Exception types that pass through without counting as failures
        """
        self.name = name
        self.failure_threshold = (
            failure_threshold or settings.circuit_breaker_failure_threshold
        )
        self.timeout = timeout if timeout is not None else settings.circuit_breaker_timeout
        self.ignore = ignore

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: float | None = None
        self.last_success_time: float | None = None
        self._lock = asyncio.Lock()

    async def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Execute function with circuit breaker protection.

        Args:
            func: Async function to execute
            *args: Positional arguments for function
            **kwargs: Keyword arguments for function

        Returns:
            Result from function execution

        Raises:
            CircuitBreakerOpenError: If circuit is open
            Exception: Any exception raised by the function
        """
        async with self._lock:
            # Check if we should transition from OPEN to HALF_OPEN
            if self.state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    logger.info(f"Circuit breaker '{self.name}' transitioning to HALF_OPEN state")
                    self.state = CircuitState.HALF_OPEN
                else:
                    raise CircuitBreakerOpenError(
                        f"Circuit breaker '{self.name}' is OPEN. "
                        f"Last failure: {self.last_failure_time}"
                    )

        # Execute the function
        try:
            result = await func(*args, **kwargs)
        except self.ignore:
            # Rate limits mean the provider is up
            await self._on_success()
            raise
        except Exception:
            await self._on_failure()
            raise

        await self._on_success()
        return result

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt reset.

        Returns:
            True if circuit should transition to HALF_OPEN
        """
        if self.last_failure_time is None:
            return True

        time_since_failure = time.time() - self.last_failure_time
        return time_since_failure >= self.timeout

    async def _on_success(self) -> None:
        """Handle successful function execution."""
        async with self._lock:
            self.failure_count = 0
            self.last_success_time = time.time()

            if self.state == CircuitState.HALF_OPEN:
                logger.info(f"Circuit breaker '{self.name}' transitioning to CLOSED state after success")
                self.state = CircuitState.CLOSED

    async def _on_failure(self) -> None:
        """Handle failed function execution."""
        async with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.time()

            # A failed probe reopens the circuit
            if self.state == CircuitState.HALF_OPEN:
                logger.warning(
                    f"Circuit breaker '{self.name}' transitioning to OPEN state after failure in HALF_OPEN"
                )
                self.state = CircuitState.OPEN
            elif self.failure_count >= self.failure_threshold:
                logger.warning(
                    f"Circuit breaker '{self.name}' transitioning to OPEN state "
                    f"after {self.failure_count} failures"
                )
                self.state = CircuitState.OPEN

    def reset(self) -> None:
        """Manually reset the circuit breaker to CLOSED state."""
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = None
        logger.info(f"Circuit breaker '{self.name}' manually reset to CLOSED state")

    def get_stats(self) -> dict[str, Any]:
        """Get circuit breaker statistics.

        Returns:
            Dictionary with circuit breaker stats
        """
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self.last_failure_time,
            "last_success_time": self.last_success_time,
            "timeout": self.timeout,
        }
