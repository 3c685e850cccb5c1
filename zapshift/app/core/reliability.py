"""
Reliability utilities.

Circuit breaker guarding calls to the payment gateway.
"""

import time
import logging
from typing import Callable, Any, Tuple, Type

logger = logging.getLogger("zapshift.reliability")


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Simple Circuit Breaker implementation.
    After 'failure_threshold' consecutive failures the circuit opens and
    rejects calls for 'reset_timeout' seconds, then lets one trial call through.

    Exceptions listed in 'excluded_exceptions' are caller mistakes (e.g. an
    unknown session id) and do not count as failures.
    """
    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: int = 60,
        excluded_exceptions: Tuple[Type[BaseException], ...] = (),
        name: str = "upstream",
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.excluded_exceptions = excluded_exceptions
        self.name = name
        self.failures = 0
        self.last_failure_time = 0
        self.state = "CLOSED" # CLOSED, OPEN, HALF_OPEN

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        if self.state == "OPEN":
            if time.time() - self.last_failure_time > self.reset_timeout:
                self.state = "HALF_OPEN"
            else:
                raise CircuitOpenError(f"Circuit '{self.name}' is OPEN")

        try:
            result = await func(*args, **kwargs)
        except self.excluded_exceptions:
            raise
        except Exception:
            self.record_failure()
            raise

        if self.state == "HALF_OPEN" or self.failures:
            self.reset_state()
        return result

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = time.time()
        if self.state == "HALF_OPEN" or self.failures >= self.failure_threshold:
            if self.state != "OPEN":
                logger.warning("Circuit '%s' opened after %s failures", self.name, self.failures)
            self.state = "OPEN"

    def reset_state(self):
        self.failures = 0
        self.state = "CLOSED"
