import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional

from student_registry.utils.logging import get_logger

logger = get_logger()


@dataclass(frozen=True)
class ThrottleDecision:
    allowed: bool
    limit: int
    remaining: int
    # Seconds until the oldest counted request leaves the window; 0 when allowed
    retry_after: float = 0.0


class RequestThrottle:
    """
    Sliding-window request log per client key.

    A request at time ``t`` counts against its client until ``t + window_seconds``,
    so no interval of ``window_seconds`` ever holds more than ``max_requests``
    admissions from one key. Keys with nothing left in the window are dropped
    by :meth:`prune`, which also runs automatically once per window and whenever
    the table grows past ``max_tracked_clients``.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        max_tracked_clients: int = 10_000,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_tracked_clients = max_tracked_clients
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_prune: Optional[float] = None

    def admit(self, client_key: str, now: Optional[float] = None) -> ThrottleDecision:
        """Count a request from ``client_key`` if it fits in the current window."""
        now = time.monotonic() if now is None else now

        with self._lock:
            self._maybe_prune(now)

            hits = self._hits.get(client_key)
            if hits is None:
                hits = deque()
                self._hits[client_key] = hits
            self._expire(hits, now)

            if len(hits) >= self.max_requests:
                retry_after = hits[0] + self.window_seconds - now
                return ThrottleDecision(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    retry_after=max(retry_after, 0.0),
                )

            hits.append(now)
            return ThrottleDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - len(hits),
            )

    def prune(self, now: Optional[float] = None) -> int:
        """Forget clients with no requests left in the window. Returns how many."""
        now = time.monotonic() if now is None else now
        with self._lock:
            return self._prune(now)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_prune = None

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._hits)

    def _expire(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _maybe_prune(self, now: float) -> None:
        if self._last_prune is None:
            self._last_prune = now
            return
        if (
            now - self._last_prune >= self.window_seconds
            or len(self._hits) >= self.max_tracked_clients
        ):
            self._prune(now)

    def _prune(self, now: float) -> int:
        stale = []
        for client_key, hits in self._hits.items():
            self._expire(hits, now)
            if not hits:
                stale.append(client_key)
        for client_key in stale:
            del self._hits[client_key]

        self._last_prune = now
        if stale:
            logger.debug(f"Throttle pruned {len(stale)} idle clients")
        return len(stale)
