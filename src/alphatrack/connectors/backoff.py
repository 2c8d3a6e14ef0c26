"""
Backoff and circuit breaker for the exchange's public REST endpoints.

- On 429: back off and open the circuit immediately
- On 418 (IP ban): open the circuit with an extended cooldown
- Otherwise open the circuit after failure_threshold consecutive failures
- Exponential backoff with jitter between retries of one call
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class RateLimitKind(str, Enum):
    """Type of rate limit error."""

    RATE_LIMIT = "RATE_LIMIT"  # 429
    IP_BAN = "IP_BAN"  # 418
    CIRCUIT_OPEN = "CIRCUIT_OPEN"  # Blocked locally


class RateLimitError(Exception):
    """Raised when the upstream rate limits us or the circuit is open."""

    def __init__(
        self,
        message: str,
        retry_after_ms: int | None = None,
        kind: RateLimitKind = RateLimitKind.RATE_LIMIT,
    ) -> None:
        super().__init__(message)
        self.retry_after_ms = retry_after_ms
        self.kind = kind

    @property
    def is_ip_ban(self) -> bool:
        return self.kind == RateLimitKind.IP_BAN


class CircuitState(str, Enum):
    """Circuit breaker state."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Blocking requests
    HALF_OPEN = "HALF_OPEN"  # Probing recovery


@dataclass
class BackoffConfig:
    """Exponential backoff parameters."""

    base_delay_ms: int = 250
    max_delay_ms: int = 5000
    multiplier: float = 2.0
    jitter_factor: float = 0.5  # ±50%
    max_retries: int = 2


@dataclass
class BackoffState:
    """Retry bookkeeping for one logical call."""

    attempt: int = 0

    def record_error(self) -> None:
        self.attempt += 1


def compute_backoff_delay(
    config: BackoffConfig,
    state: BackoffState,
    retry_after_ms: int | None = None,
    *,
    rng: random.Random | None = None,
) -> int:
    """
    Delay before the next retry.

    Args:
        config: Backoff configuration.
        state: Current retry state.
        retry_after_ms: Server-provided Retry-After, used as a floor.
        rng: Optional seeded Random for deterministic jitter.

    Returns:
        Delay in milliseconds; 0 before the first retry.
    """
    if state.attempt == 0:
        return 0

    delay = config.base_delay_ms * (config.multiplier ** (state.attempt - 1))
    jitter = (rng or random).uniform(1.0 - config.jitter_factor, 1.0 + config.jitter_factor)
    delay = min(delay * jitter, config.max_delay_ms)

    if retry_after_ms is not None and retry_after_ms > 0:
        delay = max(delay, retry_after_ms)

    return int(delay)


@dataclass
class CircuitBreaker:
    """
    Circuit breaker shared by all calls to one upstream host.

    States:
    - CLOSED: requests pass
    - OPEN: requests blocked until the recovery timeout elapses
    - HALF_OPEN: a single probe request is allowed; a probe that never
      reports back expires after recovery_timeout_ms
    """

    failure_threshold: int = 5
    recovery_timeout_ms: int = 30_000
    ban_recovery_timeout_ms: int = 300_000

    state: CircuitState = field(default=CircuitState.CLOSED)
    failure_count: int = field(default=0)
    last_failure_time_ms: int = field(default=0)
    transitions_to_open: int = field(default=0)
    _is_banned: bool = field(default=False)
    _probe_in_flight: bool = field(default=False)
    _probe_started_ms: int = field(default=0)

    _time_fn: Callable[[], int] | None = field(default=None)

    def _now_ms(self) -> int:
        if self._time_fn is not None:
            return self._time_fn()
        return int(time.time() * 1000)

    def _open(self) -> None:
        if self.state != CircuitState.OPEN:
            self.transitions_to_open += 1
        self.state = CircuitState.OPEN
        self._probe_in_flight = False

    def can_execute(self) -> bool:
        """True if a request may be sent now."""
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            timeout = self.ban_recovery_timeout_ms if self._is_banned else self.recovery_timeout_ms
            if self._now_ms() - self.last_failure_time_ms >= timeout:
                self.state = CircuitState.HALF_OPEN
                self._is_banned = False
                self._start_probe()
                return True
            return False

        # HALF_OPEN: one probe at a time
        probe_expired = self._now_ms() - self._probe_started_ms >= self.recovery_timeout_ms
        if not self._probe_in_flight or probe_expired:
            self._start_probe()
            return True
        return False

    def _start_probe(self) -> None:
        self._probe_in_flight = True
        self._probe_started_ms = self._now_ms()

    def release_probe(self) -> None:
        """Free the half-open slot of a probe that ended without a result."""
        if self.state == CircuitState.HALF_OPEN:
            self._probe_in_flight = False

    def record_success(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self._is_banned = False
        self._probe_in_flight = False

    def record_failure(self, is_rate_limit: bool = False, is_ip_ban: bool = False) -> None:
        """
        Record a failed request.

        Args:
            is_rate_limit: Failure was a 429.
            is_ip_ban: Failure was a 418.
        """
        self.last_failure_time_ms = self._now_ms()
        self.failure_count += 1
        if is_ip_ban:
            self._is_banned = True

        if self.state == CircuitState.HALF_OPEN or is_ip_ban or is_rate_limit:
            self._open()
            return

        if self.failure_count >= self.failure_threshold:
            self._open()

    def get_status(self) -> dict[str, str | int | bool]:
        """Current breaker status for health output."""
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure_time_ms": self.last_failure_time_ms,
            "is_banned": self._is_banned,
        }


def handle_error_response(
    status_code: int,
    retry_after_ms: int | None = None,
) -> RateLimitError | None:
    """
    Map an HTTP status to a RateLimitError.

    Returns:
        RateLimitError for 429/418, None otherwise.
    """
    if status_code == 429:
        return RateLimitError(
            "Rate limit exceeded (429)",
            retry_after_ms=retry_after_ms,
            kind=RateLimitKind.RATE_LIMIT,
        )
    if status_code == 418:
        return RateLimitError(
            "IP banned (418)",
            retry_after_ms=retry_after_ms or 300_000,
            kind=RateLimitKind.IP_BAN,
        )
    return None
