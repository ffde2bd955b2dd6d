"""
Session refresh throttling.

Bounds how often one principal may refresh its session.
"""

import threading
import time
from typing import Callable, Optional

from opportunity_explorer.domain.models import Principal, RefreshAttempts


class TokenRefreshThrottle:
    """
    Allow at most ``max_attempts`` refreshes per principal per window.

    The window starts at the first attempt. When it has elapsed the next
    attempt opens a new window and counts as its first attempt. Rejected
    attempts are not counted.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: float = 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: dict[str, RefreshAttempts] = {}
        self._lock = threading.Lock()

    def may_refresh(self, principal_id: str) -> bool:
        with self._lock:
            now = self._clock()
            attempts = self._attempts.get(principal_id)

            if attempts is None or now - attempts.window_started_at >= self.window_seconds:
                self._attempts[principal_id] = RefreshAttempts(
                    count=1,
                    window_started_at=now,
                    last_attempt_at=now,
                )
                return True

            if attempts.count >= self.max_attempts:
                return False

            attempts.count += 1
            attempts.last_attempt_at = now
            return True

    def should_refresh(self, principal: Optional[Principal]) -> bool:
        """Only principals with a session can refresh it."""
        if principal is None or not principal.session_id:
            return False
        return self.may_refresh(principal.id)

    def get_attempts(self, principal_id: str) -> Optional[RefreshAttempts]:
        with self._lock:
            attempts = self._attempts.get(principal_id)
            return attempts.model_copy() if attempts else None
