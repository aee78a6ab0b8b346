"""
Error taxonomy for the review extraction engine.

Every failure that can cross a component boundary derives from ScraperError.
"""

from typing import Optional


class ScraperError(Exception):
    """Base exception for all review scraping errors."""
    pass


# Pool layer

class PoolError(ScraperError):
    """Base exception for browser pool errors."""
    pass


class PoolExhausted(PoolError):
    """Raised when no pool entry becomes available within the wait timeout."""

    def __init__(self, timeout: float, max_size: int):
        self.timeout = timeout
        self.max_size = max_size
        super().__init__(
            f"No browser instance available after {timeout:.1f}s (max pool size {max_size})"
        )


class InstanceCreationFailed(PoolError):
    """Raised when the driver cannot start a new browser instance."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Browser instance could not be created: {reason}")


# Pagination layer

class PaginationError(ScraperError):
    """Base exception for pagination errors."""
    pass


class CountUnavailable(PaginationError):
    """Raised when the total item count cannot be read from the page."""

    def __init__(self, selector: str, reason: str = "locator did not appear"):
        self.selector = selector
        super().__init__(f"Total count unavailable ({selector}): {reason}")


class StallDetected(PaginationError):
    """Raised when scrolling produced no new rendered items within the wait bound."""

    def __init__(self, rendered: int, expected_total: int, timeout: float):
        self.rendered = rendered
        self.expected_total = expected_total
        self.timeout = timeout
        super().__init__(
            f"No new items rendered within {timeout:.1f}s ({rendered}/{expected_total})"
        )


# Extraction layer

class ExtractionPassError(ScraperError):
    """Structural failure of a single extraction pass. Retried by the wrapper."""
    pass


class RecordExtractionError(ScraperError):
    """Failure to extract one record. The record is dropped, never escalated."""
    pass


class ExtractionFailed(ScraperError):
    """Raised when every extraction pass attempt failed."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Extraction failed after {attempts} attempts{detail}")


# Admission layer

class AdmissionRejected(ScraperError):
    """Raised when a request exceeds the admission quota for the current window."""

    def __init__(self, key: str, quota: int, retry_after: float):
        self.key = key
        self.quota = quota
        self.retry_after = retry_after
        super().__init__(
            f"Admission quota of {quota} sessions exceeded for {key}; retry in {retry_after:.0f}s"
        )


# Orchestrator

class NavigationFailed(ScraperError):
    """Raised when the browser could not reach or load a required page."""
    pass


class TargetNotFound(ScraperError):
    """The searched business has no review listing. A normal business outcome."""

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"No business listing found for '{query}'")
