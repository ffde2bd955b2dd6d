"""
Rate Limit Store Port (Interface).

Defines the abstract contract for fixed-window request counters.
"""

from abc import ABC, abstractmethod
from typing import Optional

from opportunity_explorer.domain.models import RateLimitCounter
from opportunity_explorer.domain.policies import RateLimitPolicy


class RateLimitStorePort(ABC):
    """
    Port (interface) for rate limit counters.

    A store tracks one counter per (subject, policy) pair. The guard keeps
    separate store instances for client IPs and for principals so the two
    keyspaces never mix.
    """

    @staticmethod
    def counter_key(subject_key: str, policy: RateLimitPolicy) -> str:
        """Composite key so distinct policies on one subject never collide."""
        return f"{subject_key}:{policy.cache_key()}"

    @abstractmethod
    async def check(self, subject_key: str, policy: RateLimitPolicy) -> bool:
        """
        Record a request for the subject and report whether it is blocked.

        The first request of a window starts a new counter at 1. Once the
        counter reaches ``policy.requests`` further requests are blocked
        without incrementing until the window ends.

        Args:
            subject_key: Client IP or principal id
            policy: Quota and window to enforce

        Returns:
            True if the request must be rejected
        """
        pass

    @abstractmethod
    async def get_counter(
        self,
        subject_key: str,
        policy: RateLimitPolicy,
    ) -> Optional[RateLimitCounter]:
        """Get the current counter without recording a request."""
        pass

    @abstractmethod
    async def reset(self, subject_key: Optional[str] = None) -> None:
        """
        Drop counters for a subject, or every counter when no subject is given.

        Primarily used for testing and administrative purposes.
        """
        pass
