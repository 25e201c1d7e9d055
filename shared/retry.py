"""
Backoff policy for reconnecting to external dependencies.
"""

from shared.logging import get_logger


class BackoffPolicy:
    """Configuration for retry delays.

    The delay after failed attempt ``n`` (1-based) is ``n * base_delay``,
    capped at ``max_delay``.
    """

    def __init__(self, base_delay: float = 0.2, max_delay: float = 3.0):
        if base_delay < 0 or max_delay < 0:
            raise ValueError("Backoff delays must be non-negative")

        self.base_delay = base_delay
        self.max_delay = max_delay

    def compute_delay(self, attempt: int) -> float:
        """Calculate delay before the next attempt after ``attempt`` failures."""
        attempt = max(1, attempt)

        # Apply max delay cap
        return min(self.base_delay * attempt, self.max_delay)

    def __repr__(self) -> str:
        return f"BackoffPolicy(base_delay={self.base_delay}, max_delay={self.max_delay})"


def policy_from_config(config) -> BackoffPolicy:
    """Build the cache-service reconnect policy from service configuration."""
    policy = BackoffPolicy(
        base_delay=config.cache_reconnect_base_delay,
        max_delay=config.cache_reconnect_max_delay,
    )
    get_logger("shared.retry").debug("Configured backoff policy", policy=repr(policy))
    return policy
