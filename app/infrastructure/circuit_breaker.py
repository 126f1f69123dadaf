"""
Circuit Breaker configuration for Stripe API calls.

Prevents cascading failures and worker-thread exhaustion when Stripe is
degraded.

Circuit Breaker Pattern:
- CLOSED: Normal operation, requests pass through
- OPEN: Too many failures, requests fail immediately
- HALF_OPEN: Testing if service recovered, limited requests allowed

Configuration:
- fail_max: Number of consecutive failures before opening circuit
- reset_timeout: Seconds to wait before attempting recovery (HALF_OPEN)
- exclude: Exceptions that don't count as failures
"""

import logging

import stripe
from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

logger = logging.getLogger(__name__)


class StateChangeLogger(CircuitBreakerListener):
    """Logs circuit breaker state changes for monitoring and alerting."""

    def __init__(self, name: str):
        self.name = name

    def state_change(self, cb, old_state, new_state):
        logger.warning(
            "Circuit breaker state changed",
            extra={
                "breaker_name": self.name,
                "old_state": old_state.name if old_state else None,
                "new_state": new_state.name,
            },
        )


# Client-side errors (declined card, bad request) say nothing about Stripe's health
stripe_breaker = CircuitBreaker(
    fail_max=5,  # Open circuit after 5 consecutive failures
    reset_timeout=60,  # Wait 60 seconds before attempting recovery
    exclude=[stripe.CardError, stripe.InvalidRequestError, stripe.IdempotencyError],
    name="stripe_circuit_breaker",
    listeners=[StateChangeLogger("stripe")],
)


__all__ = [
    "stripe_breaker",
    "CircuitBreakerError",
]
