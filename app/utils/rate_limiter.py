"""Rate limiter for the weather proxy - in-memory implementation"""
from datetime import datetime, timedelta
from collections import defaultdict
from typing import Callable, Dict, List


class InMemoryRateLimiter:
    """
    Sliding-window limiter keyed by client IP.
    Keeps the OpenWeatherMap key within its free-tier quota.
    """

    def __init__(
        self,
        requests_per_window: int = 30,
        window: timedelta = timedelta(minutes=1),
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize rate limiter.

        Args:
            requests_per_window: Max requests allowed per client within the window
            window: Length of the sliding window
            clock: Time source (injectable for tests)
        """
        self.requests_per_window = requests_per_window
        self.window = window
        self.clock = clock
        self.requests: Dict[str, List[datetime]] = defaultdict(list)

    def _recent(self, client_ip: str) -> List[datetime]:
        cutoff = self.clock() - self.window
        self.requests[client_ip] = [t for t in self.requests[client_ip] if t > cutoff]
        return self.requests[client_ip]

    def is_allowed(self, client_ip: str) -> bool:
        """
        Check and record a request from client IP.

        Returns:
            True if request is allowed, False if the limit is reached
        """
        recent = self._recent(client_ip)
        if len(recent) >= self.requests_per_window:
            return False
        recent.append(self.clock())
        return True

    def retry_after_seconds(self, client_ip: str) -> int:
        """Seconds until the oldest request in the window expires"""
        recent = self._recent(client_ip)
        if len(recent) < self.requests_per_window:
            return 0
        remaining = (recent[0] + self.window) - self.clock()
        return max(1, int(remaining.total_seconds()))
