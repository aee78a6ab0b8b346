"""
Pagination Handler Module

Drives scroll-triggered loading of an infinitely growing review list and
re-extracts the rendered set as it grows.
"""

import asyncio
import logging
import re
from typing import Dict, Optional

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError

import config
from core.errors import CountUnavailable, PaginationError, StallDetected
from core.session import ScrapeSession, SessionState
from extraction.records import RecordSet
from extraction.review_extractor import ReviewExtractor

logger = logging.getLogger("PaginationController")

SCROLL_SCRIPT = """(selector) => {
    const container = document.querySelector(selector);
    if (!container) return false;
    container.scrollTo(0, container.scrollHeight);
    return true;
}"""

COUNT_SCRIPT = """(selector) => document.querySelectorAll(selector).length"""

GROWTH_SCRIPT = """([selector, previous]) => document.querySelectorAll(selector).length > previous"""


class PaginationController:
    """
    Scrolls an infinite-list container in batches until the rendered item count
    reaches the estimated total.

    Args:
        extractor: Extraction wrapper run whenever the re-extraction threshold is crossed
        selectors: Locators for the count text, the scroll container and one item
        count_timeout: Bounded wait for the count locator (seconds)
        growth_timeout: Bounded wait for new items after a batch (seconds)
        settle_delay: Fixed pause after each scroll action (seconds)
        pause_interval: Number of scroll actions between longer pauses
        pause_delay: Length of the longer pause (seconds)
        concurrency: Maximum scroll actions in flight at once
    """

    def __init__(self,
                 extractor: ReviewExtractor,
                 selectors: Optional[Dict[str, str]] = None,
                 count_timeout: float = 90.0,
                 growth_timeout: float = 10.0,
                 settle_delay: float = 0.05,
                 pause_interval: int = 100,
                 pause_delay: float = 0.1,
                 concurrency: int = 8):
        self.extractor = extractor
        self.selectors = dict(config.REVIEW_SELECTORS)
        if selectors:
            self.selectors.update(selectors)
        self.count_timeout = count_timeout
        self.growth_timeout = growth_timeout
        self.settle_delay = settle_delay
        self.pause_interval = max(1, pause_interval)
        self.pause_delay = pause_delay
        self.concurrency = max(1, concurrency)

    async def read_total(self, page: Page) -> int:
        """
        Read the advertised total item count.

        Raises:
            CountUnavailable: if the locator never appears or carries no digits
        """
        selector = self.selectors["total_count"]
        try:
            element = await page.wait_for_selector(selector, timeout=self.count_timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise CountUnavailable(selector) from e
        if element is None:
            raise CountUnavailable(selector)

        text = await element.text_content() or ""
        digits = re.sub(r"\D", "", text)
        if not digits:
            raise CountUnavailable(selector, f"no digits in {text!r}")

        total = int(digits)
        logger.info(f"Total items advertised: {total}")
        return total

    async def rendered_count(self, page: Page) -> int:
        """Number of item nodes currently in the DOM."""
        return int(await page.evaluate(COUNT_SCRIPT, self.selectors["review_item"]))

    async def _scroll_once(self, page: Page, semaphore: asyncio.Semaphore) -> None:
        async with semaphore:
            await page.evaluate(SCROLL_SCRIPT, self.selectors["scroll_container"])
            await asyncio.sleep(self.settle_delay)

    async def scroll_batch(self, page: Page, count: int) -> None:
        """Issue ``count`` scroll-to-bottom actions and wait for all of them."""
        semaphore = asyncio.Semaphore(self.concurrency)
        await asyncio.gather(*(self._scroll_once(page, semaphore) for _ in range(count)))

    async def wait_for_growth(self, page: Page, previous: int, expected_total: int) -> None:
        """
        Wait until more than ``previous`` items are rendered.

        Raises:
            StallDetected: if nothing new appears within growth_timeout
        """
        try:
            await page.wait_for_function(
                GROWTH_SCRIPT,
                arg=[self.selectors["review_item"], previous],
                timeout=self.growth_timeout * 1000,
            )
        except PlaywrightTimeoutError as e:
            raise StallDetected(previous, expected_total, self.growth_timeout) from e

    async def _wait_for_container(self, page: Page) -> None:
        selector = self.selectors["scroll_container"]
        try:
            await page.wait_for_selector(selector, timeout=self.count_timeout * 1000)
        except (PlaywrightTimeoutError, PlaywrightError) as e:
            raise PaginationError(f"Scroll container {selector} not found: {e}") from e

    async def paginate(self, page: Page, session: ScrapeSession) -> RecordSet:
        """
        Scroll and re-extract until ``session.scraped_count`` reaches the
        estimated total. Returns the result of the final extraction pass.
        """
        result = RecordSet()
        if session.estimated_total <= 0:
            logger.info("Nothing to paginate, estimated total is 0")
            session.records = result
            return result

        await self._wait_for_container(page)
        logger.info("Scrolling page ...")

        while session.scraped_count < session.estimated_total:
            session.transition(SessionState.SCROLLING)
            current_batch = min(session.batch_size, session.estimated_total - session.scraped_count)

            previous = await self.rendered_count(page)
            await self.scroll_batch(page, current_batch)

            actions_before = session.scroll_actions
            session.scroll_actions += current_batch
            if session.scroll_actions // self.pause_interval > actions_before // self.pause_interval:
                logger.info(f"Pausing for memory management ({session.scroll_actions} scroll actions)")
                await asyncio.sleep(self.pause_delay)

            await self.wait_for_growth(page, previous, session.estimated_total)
            session.scraped_count = await self.rendered_count(page)
            logger.info(f"Scrolled {session.scraped_count}/{session.estimated_total}")

            if (session.scraped_count >= session.extract_threshold
                    or session.scraped_count >= session.estimated_total):
                session.transition(SessionState.EXTRACTING)
                result = await self.extractor.extract(page)
                session.records = result
                session.extraction_passes += 1
                session.extract_threshold += session.extract_step

        return result
