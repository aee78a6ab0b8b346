"""
Shared test fixtures.

Provides in-memory stand-ins for the Playwright browser, context, page and
element handles so the pool, pagination and extraction code can be exercised
without launching a real browser.
"""
import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

import config
from components.pagination_handler import COUNT_SCRIPT, SCROLL_SCRIPT

SELECTORS = config.REVIEW_SELECTORS


class FakeElement:
    """Element handle holding text, attributes and child elements keyed by selector."""

    def __init__(self, text=None, attrs=None, children=None):
        self.text = text
        self.attrs = attrs or {}
        self.children = children or {}
        self.clicks = 0

    async def text_content(self):
        return self.text

    async def get_attribute(self, name):
        return self.attrs.get(name)

    async def query_selector(self, selector):
        child = self.children.get(selector)
        if isinstance(child, list):
            return child[0] if child else None
        return child

    async def query_selector_all(self, selector):
        child = self.children.get(selector)
        if child is None:
            return []
        return child if isinstance(child, list) else [child]

    async def click(self):
        self.clicks += 1


def make_review(index, rating="Rated 4.0 out of 5,", title=None, more=False,
                href=None, text=None, published_at="2 weeks ago"):
    """Build a review node shaped like the rendered listing."""
    title = title if title is not None else f"Reviewer {index}"
    href = href if href is not None else f"https://www.google.com/maps/contrib/{1000 + index}?hl=en"
    text = text if text is not None else f"Review text {index}"

    children = {
        SELECTORS["reviewer_link"]: FakeElement(text=title, attrs={"href": href}),
        SELECTORS["reviewer_picture"]: FakeElement(attrs={"src": f"https://lh3.example.com/{index}.png"}),
        SELECTORS["published_at"]: FakeElement(text=published_at),
    }
    if rating is not None:
        children[SELECTORS["rating"]] = [FakeElement(attrs={"aria-label": rating})]
    if more:
        children[SELECTORS["more_button"]] = FakeElement()
        children[SELECTORS["expanded_text"]] = FakeElement(text=f"{text} (full)")
    else:
        children[SELECTORS["inline_text"]] = FakeElement(text=text)
    return FakeElement(children=children)


class FakeKeyboard:
    def __init__(self):
        self.pressed = []

    async def press(self, key):
        self.pressed.append(key)


class FakePage:
    """
    Page whose review list grows by ``growth_per_scroll`` nodes on each scroll
    action, up to ``renderable`` nodes.
    """

    def __init__(self, renderable=0, growth_per_scroll=1, total_text=None,
                 found=True, container_failures=0, node_factory=make_review):
        self.renderable = renderable
        self.growth_per_scroll = growth_per_scroll
        self.node_factory = node_factory
        self.rendered = []
        self.scroll_calls = 0
        self.container_failures = container_failures
        self.keyboard = FakeKeyboard()
        self.visited = []
        self.filled = []
        self.load_states = []

        self.elements = {
            SELECTORS["search_input"]: FakeElement(),
            SELECTORS["scroll_container"]: FakeElement(),
        }
        if found:
            self.elements[SELECTORS["result_link"]] = FakeElement(text="reviews")
        if total_text is not None:
            self.elements[SELECTORS["total_count"]] = FakeElement(text=total_text)

    def _grow(self):
        for _ in range(self.growth_per_scroll):
            if len(self.rendered) >= self.renderable:
                return
            self.rendered.append(self.node_factory(len(self.rendered)))

    async def evaluate(self, script, arg=None):
        if script == SCROLL_SCRIPT:
            self.scroll_calls += 1
            self._grow()
            return True
        if script == COUNT_SCRIPT:
            return len(self.rendered)
        raise AssertionError(f"Unexpected script: {script}")

    async def wait_for_function(self, script, arg=None, timeout=None):
        _, previous = arg
        if len(self.rendered) > previous:
            return True
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_selector(self, selector, timeout=None, state=None):
        element = self.elements.get(selector)
        if element is None:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return element

    async def query_selector(self, selector):
        if selector == SELECTORS["scroll_container"] and self.container_failures > 0:
            self.container_failures -= 1
            return None
        return self.elements.get(selector)

    async def query_selector_all(self, selector):
        if selector == SELECTORS["review_item"]:
            return list(self.rendered)
        return []

    async def goto(self, url, timeout=None):
        self.visited.append(url)

    async def fill(self, selector, value):
        self.filled.append((selector, value))

    async def wait_for_load_state(self, state=None, timeout=None):
        self.load_states.append(state)


class FakeContext:
    def __init__(self, page):
        self.page = page
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Browser whose contexts all serve the same page."""

    def __init__(self, page=None):
        self.page = page or FakePage()
        self.connected = True
        self.close_calls = 0
        self.contexts = []

    def is_connected(self):
        return self.connected

    async def new_context(self, **options):
        context = FakeContext(self.page)
        context.options = options
        self.contexts.append(context)
        return context

    async def close(self):
        self.close_calls += 1
        self.connected = False


class FakeLauncher:
    """Browser launcher that can be told to fail its first ``failures`` launches."""

    def __init__(self, page_factory=None, failures=0):
        self.page_factory = page_factory
        self.failures = failures
        self.calls = 0
        self.browsers = []

    async def __call__(self):
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise PlaywrightError("Browser closed unexpectedly")
        page = self.page_factory() if self.page_factory else None
        browser = FakeBrowser(page)
        self.browsers.append(browser)
        return browser


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def selectors():
    return dict(SELECTORS)


@pytest.fixture
def fake_page():
    """Factory for fake pages."""
    return FakePage


@pytest.fixture
def review_node():
    """Factory for fake review nodes."""
    return make_review


@pytest.fixture
def fake_launcher():
    """Factory for fake browser launchers."""
    return FakeLauncher


@pytest.fixture
def fake_clock():
    return FakeClock()
