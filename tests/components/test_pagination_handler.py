import pytest

from components import pagination_handler
from components.pagination_handler import PaginationController
from core.admission import AdmissionController
from core.errors import CountUnavailable, StallDetected
from core.session import ScrapeSession, SessionState
from extraction.records import Record, RecordSet


class SpyExtractor:
    """Records the rendered count at every extraction pass."""

    def __init__(self):
        self.calls = []

    async def extract(self, page):
        self.calls.append(len(page.rendered))
        records = [Record(title=f"Reviewer {i}", rating_value=5.0) for i in range(len(page.rendered))]
        return RecordSet(records=records, attempts=1)


@pytest.fixture
def extractor():
    return SpyExtractor()


@pytest.fixture
def controller(extractor):
    return PaginationController(
        extractor,
        count_timeout=0.1,
        growth_timeout=0.1,
        settle_delay=0,
        pause_interval=100,
        pause_delay=0,
        concurrency=4,
    )


def sized_session(total):
    """Session that has searched, counted and been sized for ``total`` items."""
    session = ScrapeSession("Acme Plumbing")
    session.transition(SessionState.SEARCHING)
    session.transition(SessionState.COUNTING)
    plan = AdmissionController().plan(total)
    session.estimated_total = plan.total_items
    session.batch_size = plan.batch_size
    session.extract_threshold = plan.extract_threshold
    session.extract_step = plan.extract_step
    return session


class TestReadTotal:
    """Test suite for reading the advertised total."""

    @pytest.mark.asyncio
    async def test_digits_are_extracted(self, controller, fake_page):
        page = fake_page(total_text="1,234 reviews")
        assert await controller.read_total(page) == 1234

    @pytest.mark.asyncio
    async def test_missing_locator(self, controller, fake_page):
        with pytest.raises(CountUnavailable):
            await controller.read_total(fake_page())

    @pytest.mark.asyncio
    async def test_text_without_digits(self, controller, fake_page):
        with pytest.raises(CountUnavailable):
            await controller.read_total(fake_page(total_text="No reviews"))


class TestPaginate:
    """Test suite for PaginationController.paginate."""

    @pytest.mark.asyncio
    async def test_small_total(self, controller, extractor, fake_page):
        """Fifteen items: one scroll per batch, extraction at 10 and at 15."""
        page = fake_page(renderable=15)
        session = sized_session(15)

        result = await controller.paginate(page, session)

        assert page.scroll_calls == 15
        assert session.scroll_actions == 15
        assert extractor.calls == [10, 15]
        assert session.extraction_passes == 2
        assert session.scraped_count == 15
        assert len(result) == 15
        assert session.records is result

    @pytest.mark.asyncio
    async def test_large_total(self, controller, extractor, fake_page):
        """600 items: batches of 24, first extraction at 48, then every 24."""
        page = fake_page(renderable=600)
        session = sized_session(600)

        await controller.paginate(page, session)

        assert session.batch_size == 24
        assert page.scroll_calls == 600
        assert extractor.calls[0] == 48
        assert extractor.calls[-1] == 600
        assert extractor.calls == list(range(48, 601, 24))
        assert session.extraction_passes == 24

    @pytest.mark.asyncio
    async def test_mid_sized_total_extracts_every_batch(self, controller, extractor, fake_page):
        """50 items: batches of 5, extraction after every batch."""
        page = fake_page(renderable=50)
        session = sized_session(50)

        await controller.paginate(page, session)

        assert session.batch_size == 5
        assert extractor.calls == list(range(5, 51, 5))
        assert session.extraction_passes == 10
        assert session.scraped_count == 50

    @pytest.mark.asyncio
    async def test_zero_total(self, controller, extractor, fake_page):
        page = fake_page()
        session = sized_session(0)

        result = await controller.paginate(page, session)

        assert len(result) == 0
        assert page.scroll_calls == 0
        assert extractor.calls == []

    @pytest.mark.asyncio
    async def test_last_batch_is_trimmed(self, controller, fake_page):
        """No batch issues more scroll actions than items remain."""
        page = fake_page(renderable=25)
        session = sized_session(25)
        assert session.batch_size == 3

        await controller.paginate(page, session)

        assert page.scroll_calls == 25

    @pytest.mark.asyncio
    async def test_over_rendering_terminates(self, controller, extractor, fake_page):
        page = fake_page(renderable=40, growth_per_scroll=3)
        session = sized_session(15)

        await controller.paginate(page, session)

        assert session.scraped_count >= 15
        assert page.scroll_calls <= 15
        assert extractor.calls[-1] == session.scraped_count

    @pytest.mark.asyncio
    async def test_stall_when_count_overstates(self, controller, extractor, fake_page):
        """The page advertises more items than it ever renders."""
        page = fake_page(renderable=12)
        session = sized_session(15)

        with pytest.raises(StallDetected) as exc_info:
            await controller.paginate(page, session)

        assert exc_info.value.rendered == 12
        assert exc_info.value.expected_total == 15
        assert extractor.calls == [10]

    @pytest.mark.asyncio
    async def test_long_pause_between_scroll_groups(self, extractor, fake_page, monkeypatch):
        delays = []

        async def fake_sleep(delay):
            delays.append(delay)

        monkeypatch.setattr(pagination_handler.asyncio, "sleep", fake_sleep)
        controller = PaginationController(
            extractor, settle_delay=0, pause_interval=5, pause_delay=0.5, concurrency=1,
        )
        page = fake_page(renderable=15)

        await controller.paginate(page, sized_session(15))

        assert delays.count(0.5) == 3
        assert delays.count(0) == 15
