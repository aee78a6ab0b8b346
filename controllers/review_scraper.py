"""
Review scraping controller.

Composes the browser pool, the pagination controller and the extraction
wrapper into the lifecycle of one request:
acquire -> search -> count -> scroll/extract -> respond -> release.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError

import config
from components.pagination_handler import PaginationController
from core.admission import AdmissionController
from core.browser_pool import BrowserPool
from core.errors import NavigationFailed, TargetNotFound
from core.session import ScrapeSession, SessionState
from extraction.review_extractor import ReviewExtractor
from utils.logging import get_logger
from utils.retry_utils import with_browser_retry

logger = get_logger("controllers.review_scraper")

SUCCESS_MESSAGE = "Reviews Successfully Extracted."
NOT_FOUND_MESSAGE = "Business Account Does Not Exist!"


@dataclass
class ScrapeResult:
    """Outcome of one scrape session."""
    firm_name: str
    found: bool = True
    reviews: List[Dict[str, Any]] = field(default_factory=list)
    estimated_total: int = 0
    scraped_count: int = 0
    dropped: int = 0
    extraction_passes: int = 0
    elapsed: float = 0.0

    @classmethod
    def from_session(cls, session: ScrapeSession) -> "ScrapeResult":
        return cls(
            firm_name=session.query,
            reviews=session.records.to_list(),
            estimated_total=session.estimated_total,
            scraped_count=session.scraped_count,
            dropped=session.records.dropped,
            extraction_passes=session.extraction_passes,
            elapsed=session.elapsed,
        )

    @classmethod
    def not_found(cls, session: ScrapeSession) -> "ScrapeResult":
        return cls(firm_name=session.query, found=False, elapsed=session.elapsed)

    @property
    def message(self) -> str:
        return SUCCESS_MESSAGE if self.found else NOT_FOUND_MESSAGE

    def to_payload(self) -> Dict[str, Any]:
        """Response body for this result."""
        return {
            "success": 1 if self.reviews else 0,
            "firm_name": self.firm_name,
            "message": self.message,
            "totalCount": len(self.reviews),
            "reviews": self.reviews,
        }


class ReviewScraper:
    """Runs one scrape session per call against an exclusively leased browser."""

    def __init__(self,
                 pool: BrowserPool,
                 paginator: PaginationController,
                 admission: AdmissionController,
                 selectors: Optional[Dict[str, str]] = None,
                 search_url: str = config.SEARCH_URL,
                 navigation_timeout: float = config.NAVIGATION_TIMEOUT,
                 search_input_timeout: float = config.SEARCH_INPUT_TIMEOUT,
                 search_result_timeout: float = config.SEARCH_RESULT_TIMEOUT,
                 page_load_timeout: float = config.PAGE_LOAD_TIMEOUT):
        self.pool = pool
        self.paginator = paginator
        self.admission = admission
        self.selectors = dict(config.REVIEW_SELECTORS)
        if selectors:
            self.selectors.update(selectors)
        self.search_url = search_url
        self.navigation_timeout = navigation_timeout
        self.search_input_timeout = search_input_timeout
        self.search_result_timeout = search_result_timeout
        self.page_load_timeout = page_load_timeout

    @classmethod
    def from_config(cls, pool: BrowserPool, admission: AdmissionController) -> "ReviewScraper":
        """Build a scraper whose components are sized from config."""
        extractor = ReviewExtractor(
            max_attempts=config.EXTRACTION_MAX_ATTEMPTS,
            retry_delay=config.EXTRACTION_RETRY_DELAY,
        )
        paginator = PaginationController(
            extractor,
            count_timeout=config.COUNT_TIMEOUT,
            growth_timeout=config.GROWTH_TIMEOUT,
            settle_delay=config.SCROLL_SETTLE_DELAY,
            pause_interval=config.SCROLL_PAUSE_INTERVAL,
            pause_delay=config.SCROLL_PAUSE_DELAY,
            concurrency=config.SCROLL_CONCURRENCY,
        )
        return cls(pool, paginator, admission)

    async def scrape(self, firm: str) -> ScrapeResult:
        """
        Scrape every visible review of ``firm``.

        The leased browser is released on every path. A missing business is
        returned as a not-found result; every other failure is re-raised after
        the release.
        """
        session = ScrapeSession(firm)
        log = logger.bind(firm=firm)
        log.info("Scrape session started")

        try:
            async with self.pool.lease() as entry:
                async with entry.open_page() as page:
                    await self._search(page, session)
                    await self._count(page, session)
                    await self.paginator.paginate(page, session)
                    session.transition(SessionState.RESPONDING)
            session.transition(SessionState.RELEASED)
        except TargetNotFound as e:
            session.fail(e)
            log.info("Business account does not exist")
            return ScrapeResult.not_found(session)
        except Exception as e:
            session.fail(e)
            log.error("Scrape session failed", error=str(e), error_type=type(e).__name__,
                      scraped=session.scraped_count, estimated_total=session.estimated_total)
            raise

        result = ScrapeResult.from_session(session)
        log.info("Scrape session finished", reviews=len(result.reviews), dropped=result.dropped,
                 scraped=result.scraped_count, estimated_total=result.estimated_total,
                 passes=result.extraction_passes)
        return result

    @with_browser_retry(max_attempts=config.NAVIGATION_ATTEMPTS)
    async def _open_search_page(self, page: Page) -> None:
        await page.goto(self.search_url, timeout=self.navigation_timeout * 1000)

    async def _search(self, page: Page, session: ScrapeSession) -> None:
        """Search for the business and open its review listing."""
        session.transition(SessionState.SEARCHING)
        try:
            await self._open_search_page(page)
            await page.wait_for_selector(self.selectors["search_input"], timeout=self.search_input_timeout * 1000)
            await page.fill(self.selectors["search_input"], session.query)
            await page.keyboard.press("Enter")
        except PlaywrightError as e:
            raise NavigationFailed(f"Search page unavailable: {e}") from e

        try:
            link = await page.wait_for_selector(
                self.selectors["result_link"],
                state="visible",
                timeout=self.search_result_timeout * 1000,
            )
        except PlaywrightTimeoutError as e:
            raise TargetNotFound(session.query) from e
        if link is None:
            raise TargetNotFound(session.query)

        try:
            await link.click()
            await page.wait_for_load_state("domcontentloaded", timeout=self.page_load_timeout * 1000)
        except PlaywrightError as e:
            raise NavigationFailed(f"Review listing did not load: {e}") from e

    async def _count(self, page: Page, session: ScrapeSession) -> None:
        """Read the advertised total and size the session from it."""
        session.transition(SessionState.COUNTING)
        session.estimated_total = await self.paginator.read_total(page)

        plan = self.admission.plan(session.estimated_total)
        session.batch_size = plan.batch_size
        session.extract_threshold = plan.extract_threshold
        session.extract_step = plan.extract_step
        logger.info("Session sized", firm=session.query, total=plan.total_items,
                    batch_size=plan.batch_size, extract_threshold=plan.extract_threshold)
