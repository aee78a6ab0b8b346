"""
Admission control and workload sizing.

The same total-count-dependent batch size drives three decisions: how many
scroll actions are issued per pagination batch, how often the rendered list is
re-extracted, and how many sessions may be admitted per time window given an
assumed peak workload.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from core.errors import AdmissionRejected

logger = logging.getLogger(__name__)

# Threshold used when the total is too small to size batches from it
SMALL_TOTAL_THRESHOLD = 10


def calculate_batch_size(total_items: int) -> int:
    """
    Number of scroll actions per batch for a given total item count.

    Always at least 1. The value grows within each band but drops where a
    band with a larger divisor begins.
    """
    if total_items > 500:
        return math.ceil(total_items / 25)
    elif total_items > 100:
        return math.ceil(total_items / 20)
    elif total_items > 20:
        return math.ceil(total_items / 10)
    return 1


def calculate_extract_threshold(total_items: int) -> int:
    """Initial rendered-item count that triggers the first extraction pass."""
    batch_size = calculate_batch_size(total_items)
    if total_items > 100:
        return batch_size * 2
    elif total_items > 20:
        return batch_size
    return SMALL_TOTAL_THRESHOLD


def calculate_extract_step(total_items: int) -> int:
    """How far the re-extraction threshold advances after each pass."""
    if total_items <= 20:
        return SMALL_TOTAL_THRESHOLD
    return calculate_batch_size(total_items)


@dataclass(frozen=True)
class AdmissionPlan:
    """Sizing decisions for one session, computed once from its estimated total."""
    total_items: int
    batch_size: int
    extract_threshold: int
    extract_step: int


class FixedWindowCounter:
    """
    Fixed window counter for one client key.

    The counter resets once the window expires.
    """

    def __init__(self, window_size: float, max_requests: int, clock: Callable[[], float] = time.monotonic):
        self.window_size = window_size
        self.max_requests = max_requests
        self._clock = clock
        self.current_window_start = clock()
        self.request_count = 0

    def allow_request(self) -> bool:
        """Count a request if it fits in the current window."""
        now = self._clock()
        if now - self.current_window_start >= self.window_size:
            self.current_window_start = now
            self.request_count = 0

        if self.request_count < self.max_requests:
            self.request_count += 1
            return True
        return False

    def get_wait_time(self) -> float:
        """Seconds until the current window resets."""
        remaining = self.current_window_start + self.window_size - self._clock()
        return max(0.0, remaining)


class AdmissionController:
    """
    Gates new scrape sessions before they may touch the browser pool.

    The per-window quota is the number of batch-sized sessions needed to cover
    ``assumed_peak_items``: ``ceil(peak / batch_size(peak))``.
    """

    def __init__(self,
                 assumed_peak_items: int = 2800,
                 window_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.assumed_peak_items = assumed_peak_items
        self.window_seconds = window_seconds
        self.quota = math.ceil(assumed_peak_items / calculate_batch_size(assumed_peak_items))
        self._clock = clock
        self._counters: Dict[str, FixedWindowCounter] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def plan(self, total_items: int) -> AdmissionPlan:
        """Compute batch size and first re-extraction threshold for a session."""
        total_items = max(0, total_items)
        return AdmissionPlan(
            total_items=total_items,
            batch_size=calculate_batch_size(total_items),
            extract_threshold=calculate_extract_threshold(total_items),
            extract_step=calculate_extract_step(total_items),
        )

    def admit(self, key: str = "global") -> None:
        """
        Count one session against ``key``'s quota.

        Raises:
            AdmissionRejected: if the quota for the current window is used up
        """
        with self._lock:
            self._cleanup_expired_counters()
            counter = self._counters.get(key)
            if counter is None:
                counter = FixedWindowCounter(self.window_seconds, self.quota, clock=self._clock)
                self._counters[key] = counter

            if counter.allow_request():
                return
            retry_after = counter.get_wait_time()

        logger.warning(f"Admission rejected for {key}: quota {self.quota} per {self.window_seconds:.0f}s reached")
        raise AdmissionRejected(key, self.quota, retry_after)

    def _cleanup_expired_counters(self) -> None:
        """Drop counters whose window has closed, at most once per window. Caller holds the lock."""
        now = self._clock()
        if now - self._last_cleanup < self.window_seconds:
            return
        self._last_cleanup = now
        expired_keys = [
            key for key, counter in self._counters.items()
            if now - counter.current_window_start >= counter.window_size
        ]
        for key in expired_keys:
            del self._counters[key]
        if expired_keys:
            logger.debug(f"Cleaned up {len(expired_keys)} expired admission counters")

    def remaining(self, key: str = "global") -> int:
        """Sessions still admissible for ``key`` in the current window."""
        with self._lock:
            counter = self._counters.get(key)
            if counter is None:
                return self.quota
            if self._clock() - counter.current_window_start >= counter.window_size:
                return self.quota
            return max(0, self.quota - counter.request_count)

    def reset(self) -> None:
        """Forget every client's window."""
        with self._lock:
            self._counters.clear()
