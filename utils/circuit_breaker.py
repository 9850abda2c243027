import threading
import time
from enum import Enum
from typing import Optional, Callable, Any, Dict

from utils.logger import setup_logger

logger = setup_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(Exception):
    pass


class CircuitBreaker:
    """Stops calling an external provider after repeated failures.

    Once ``failure_threshold`` consecutive failures are seen the circuit opens
    and calls fail fast with ``CircuitBreakerOpenError`` until
    ``recovery_timeout_seconds`` have passed; the next call is then let through
    as a probe.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout_seconds: float = 60,
        expected_exception: type = Exception
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout_seconds = recovery_timeout_seconds
        self.expected_exception = expected_exception
        
        self.failure_count = 0
        self.last_failure_at: Optional[float] = None
        self.state = CircuitState.CLOSED
        self._lock = threading.Lock()
    
    def call(self, func: Callable, *args, **kwargs) -> Any:
        with self._lock:
            if self.state == CircuitState.OPEN:
                if not self._recovery_window_elapsed():
                    logger.warning(
                        f"Circuit breaker {self.name} is OPEN, rejecting call",
                        extra={"circuit_breaker": self.name, "failure_count": self.failure_count}
                    )
                    raise CircuitBreakerOpenError(f"circuit breaker {self.name} is open")
                
                logger.info(
                    f"Circuit breaker {self.name} probing with HALF_OPEN",
                    extra={"circuit_breaker": self.name}
                )
                self.state = CircuitState.HALF_OPEN
        
        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise
        
        self._on_success()
        return result
    
    def _recovery_window_elapsed(self) -> bool:
        if self.last_failure_at is None:
            return True
        return time.monotonic() - self.last_failure_at >= self.recovery_timeout_seconds
    
    def _on_success(self):
        with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                logger.info(
                    f"Circuit breaker {self.name} recovered, transitioning to CLOSED",
                    extra={"circuit_breaker": self.name}
                )
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.last_failure_at = None
    
    def _on_failure(self):
        with self._lock:
            self.failure_count += 1
            self.last_failure_at = time.monotonic()
            
            if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
                if self.state != CircuitState.OPEN:
                    logger.error(
                        f"Circuit breaker {self.name} opening",
                        extra={
                            "circuit_breaker": self.name,
                            "failure_count": self.failure_count,
                            "threshold": self.failure_threshold
                        }
                    )
                self.state = CircuitState.OPEN
    
    def reset(self):
        with self._lock:
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.last_failure_at = None
    
    def get_state(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout_seconds": self.recovery_timeout_seconds
        }


google_books_circuit_breaker = CircuitBreaker(name="google_books", failure_threshold=5, recovery_timeout_seconds=60)
tmdb_circuit_breaker = CircuitBreaker(name="tmdb", failure_threshold=5, recovery_timeout_seconds=60)
google_places_circuit_breaker = CircuitBreaker(name="google_places", failure_threshold=5, recovery_timeout_seconds=60)
