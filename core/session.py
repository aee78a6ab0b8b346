"""
Per-request scrape session state.
"""

import logging
import time
from enum import Enum
from typing import Dict, Optional, Set

from extraction.records import RecordSet

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle of one scrape session."""
    CREATED = "created"
    SEARCHING = "searching"
    COUNTING = "counting"
    SCROLLING = "scrolling"
    EXTRACTING = "extracting"
    RESPONDING = "responding"
    RELEASED = "released"
    FAILED = "failed"


TERMINAL_STATES = {SessionState.RELEASED, SessionState.FAILED}

ALLOWED_TRANSITIONS: Dict[SessionState, Set[SessionState]] = {
    SessionState.CREATED: {SessionState.SEARCHING},
    SessionState.SEARCHING: {SessionState.COUNTING},
    SessionState.COUNTING: {SessionState.SCROLLING, SessionState.RESPONDING},
    SessionState.SCROLLING: {SessionState.SCROLLING, SessionState.EXTRACTING, SessionState.RESPONDING},
    SessionState.EXTRACTING: {SessionState.SCROLLING, SessionState.RESPONDING},
    SessionState.RESPONDING: {SessionState.RELEASED},
    SessionState.RELEASED: set(),
    SessionState.FAILED: set(),
}


class InvalidTransition(Exception):
    """Raised on a state change the session lifecycle does not allow."""

    def __init__(self, current: SessionState, target: SessionState):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move session from {current.value} to {target.value}")


class ScrapeSession:
    """
    Mutable state of one scrape request.

    ``records`` holds the result of the most recent extraction pass only; each
    pass replaces it.
    """

    def __init__(self, query: str):
        self._query = query
        self.state = SessionState.CREATED
        self.estimated_total = 0
        self._scraped_count = 0
        self.batch_size = 1
        self.extract_threshold = 0
        self.extract_step = 1
        self.records = RecordSet()
        self.extraction_passes = 0
        self.scroll_actions = 0
        self.started_at = time.time()
        self.failure: Optional[BaseException] = None

    @property
    def query(self) -> str:
        return self._query

    @property
    def scraped_count(self) -> int:
        return self._scraped_count

    @scraped_count.setter
    def scraped_count(self, value: int) -> None:
        # Never moves backwards, even if the page briefly reports fewer items
        self._scraped_count = max(self._scraped_count, value)

    @property
    def elapsed(self) -> float:
        return time.time() - self.started_at

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, target: SessionState) -> None:
        """Move to ``target``, enforcing the lifecycle."""
        if target is SessionState.FAILED:
            self.fail()
            return
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        if target is not self.state:
            logger.debug(f"Session '{self._query}': {self.state.value} -> {target.value}")
        self.state = target

    def fail(self, error: Optional[BaseException] = None) -> None:
        """Move to FAILED from any non-terminal state."""
        if self.is_terminal:
            return
        self.failure = error
        logger.debug(f"Session '{self._query}': {self.state.value} -> failed")
        self.state = SessionState.FAILED
