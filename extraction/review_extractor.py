"""
Review extraction with per-record fault isolation and whole-pass retries.

A pass reads every currently rendered review node. Faults on a single node
drop that node only; structural faults (the list container vanished, the
driver failed while listing nodes) fail the pass, which is retried with a
fixed delay up to a bounded number of attempts.
"""

import logging
from typing import AsyncIterator, Dict, Optional

from playwright.async_api import Error as PlaywrightError, ElementHandle, Page
from tenacity import RetryError

import config
from core.errors import ExtractionFailed, ExtractionPassError, RecordExtractionError
from extraction.records import (
    Record,
    RecordSet,
    clean_text,
    identity_from_url,
    parse_rating,
    strip_query,
)
from utils.retry_utils import fixed_backoff_retrying

logger = logging.getLogger(__name__)


class _PassCounter:
    """Mutable tally shared with the record generator during one pass."""

    def __init__(self):
        self.dropped = 0


class ReviewExtractor:
    """
    Converts the rendered review list into a RecordSet.

    Args:
        selectors: Locators for the list container and the fields of one review
        max_attempts: Maximum number of passes before giving up
        retry_delay: Fixed delay between passes in seconds
        profile_suffix: Suffix appended to the identity URL to build profileUrl
    """

    def __init__(self,
                 selectors: Optional[Dict[str, str]] = None,
                 max_attempts: int = 3,
                 retry_delay: float = 5.0,
                 profile_suffix: str = config.PROFILE_URL_SUFFIX):
        self.selectors = dict(config.REVIEW_SELECTORS)
        if selectors:
            self.selectors.update(selectors)
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.profile_suffix = profile_suffix

    async def extract(self, page: Page) -> RecordSet:
        """
        Run extraction passes until one completes without a structural fault.

        Raises:
            ExtractionFailed: when every attempt failed; no partial result is kept
        """
        attempts = 0
        try:
            async for attempt in fixed_backoff_retrying(
                max_attempts=self.max_attempts,
                wait_time=self.retry_delay,
                exception_types=(ExtractionPassError,),
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    record_set = await self._extract_pass(page)
                    record_set.attempts = attempts
                    return record_set
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(f"Extraction failed after {attempts} attempts: {last_error}")
            raise ExtractionFailed(attempts, last_error) from last_error

    async def _extract_pass(self, page: Page) -> RecordSet:
        """One pass over the rendered nodes."""
        try:
            container = await page.query_selector(self.selectors["scroll_container"])
        except PlaywrightError as e:
            raise ExtractionPassError(f"Could not query review container: {e}") from e
        if container is None:
            raise ExtractionPassError("Review container is not present")

        try:
            nodes = await page.query_selector_all(self.selectors["review_item"])
        except PlaywrightError as e:
            raise ExtractionPassError(f"Could not list review nodes: {e}") from e

        counter = _PassCounter()
        records = [record async for record in self._iter_records(nodes, counter)]

        if counter.dropped:
            logger.warning(f"Dropped {counter.dropped} of {len(nodes)} review nodes")
        logger.info(f"Extracted {len(records)} reviews from {len(nodes)} rendered nodes")
        return RecordSet(records=records, dropped=counter.dropped)

    async def _iter_records(self, nodes, counter: _PassCounter) -> AsyncIterator[Record]:
        """Yield only the nodes that extract cleanly; count the rest."""
        for index, node in enumerate(nodes):
            try:
                yield await self.extract_record(node)
            except (RecordExtractionError, PlaywrightError) as e:
                counter.dropped += 1
                logger.debug(f"Skipping review node {index}: {e}")

    async def extract_record(self, node: ElementHandle) -> Record:
        """
        Extract one review node.

        Raises:
            RecordExtractionError: if the title or rating is missing or invalid
        """
        reviewer_link = await node.query_selector(self.selectors["reviewer_link"])
        ratings = await node.query_selector_all(self.selectors["rating"])
        if reviewer_link is None or not ratings:
            raise RecordExtractionError("Missing required element")

        title = clean_text(await reviewer_link.text_content())
        if not title:
            raise RecordExtractionError("Empty review title")
        rating_value = parse_rating(await ratings[0].get_attribute("aria-label"))

        picture = await node.query_selector(self.selectors["reviewer_picture"])
        image_url = await picture.get_attribute("src") if picture is not None else None

        description = await self._extract_description(node)

        identity_url = strip_query(await reviewer_link.get_attribute("href"))
        profile_url = f"{identity_url.rstrip('/')}{self.profile_suffix}" if identity_url else None

        date_element = await node.query_selector(self.selectors["published_at"])
        published_at = clean_text(await date_element.text_content()) if date_element is not None else None

        return Record(
            id=identity_from_url(identity_url),
            title=title,
            description=description,
            rating_value=rating_value,
            image_url=image_url,
            profile_url=profile_url,
            published_at=published_at,
        )

    async def _extract_description(self, node: ElementHandle) -> Optional[str]:
        """
        Read the review text through exactly one of the two DOM shapes.

        When the "more" control exists it is clicked once and the expanded text
        is read; otherwise the inline truncated span is read.
        """
        more_button = await node.query_selector(self.selectors["more_button"])
        if more_button is not None:
            await more_button.click()
            expanded = await node.query_selector(self.selectors["expanded_text"])
            return clean_text(await expanded.text_content()) if expanded is not None else None

        inline = await node.query_selector(self.selectors["inline_text"])
        return clean_text(await inline.text_content()) if inline is not None else None
