"""Connectors for the upstream exchange."""

from alphatrack.connectors.backoff import (
    BackoffConfig,
    BackoffState,
    CircuitBreaker,
    CircuitState,
    RateLimitError,
    RateLimitKind,
    compute_backoff_delay,
    handle_error_response,
)

__all__ = [
    "BackoffConfig",
    "BackoffState",
    "CircuitBreaker",
    "CircuitState",
    "RateLimitError",
    "RateLimitKind",
    "compute_backoff_delay",
    "handle_error_response",
]
