import asyncio
import logging
import time
import uuid
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set

from playwright.async_api import async_playwright, Browser, BrowserContext, Page
from tenacity import RetryError

from core.errors import InstanceCreationFailed, PoolExhausted
from core.service_interface import BaseService
from utils.retry_utils import fixed_backoff_retrying

logger = logging.getLogger(__name__)

# Signature of a callable that starts one browser process
BrowserLauncher = Callable[[], Awaitable[Browser]]


class PoolEntry:
    """One pooled browser instance with usage metadata."""

    def __init__(self, entry_id: str, browser: Browser, context_options: Optional[Dict[str, Any]] = None):
        self.entry_id = entry_id
        self.browser = browser
        self.context_options = context_options or {}
        self.created_at = time.time()
        self.last_used_at = time.time()
        self.lease_count = 0
        self._destroyed = False

    def update_usage(self):
        """Update entry usage statistics."""
        self.last_used_at = time.time()
        self.lease_count += 1

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def is_healthy(self) -> bool:
        """An entry is reusable while its browser process is still connected."""
        if self._destroyed:
            return False
        try:
            return bool(self.browser.is_connected())
        except Exception as e:
            logger.debug(f"Health check failed for entry {self.entry_id}: {e}")
            return False

    @asynccontextmanager
    async def open_page(self):
        """
        Open an isolated browsing context with a single page for one session.

        The context is closed when the block exits, the browser is kept.
        """
        context: BrowserContext = await self.browser.new_context(**self.context_options)
        try:
            page: Page = await context.new_page()
            yield page
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Error closing browser context on entry {self.entry_id}: {e}")

    async def destroy(self) -> None:
        """Close the browser. Idempotent and never raises."""
        if self._destroyed:
            return
        self._destroyed = True
        try:
            await self.browser.close()
        except Exception as e:
            logger.warning(f"Error destroying browser entry {self.entry_id}: {e}")


class BrowserPool(BaseService):
    """
    Bounded pool of headless browser instances.

    Entries are pre-warmed up to ``min_size`` on open and created lazily up to
    ``max_size`` on demand. An entry is checked out to at most one caller at a
    time; all bookkeeping happens under a single asyncio condition.
    """

    def __init__(self,
                 min_size: int = 1,
                 max_size: int = 10,
                 acquire_timeout: float = 60.0,
                 create_attempts: int = 2,
                 create_retry_delay: float = 1.0,
                 headless: bool = True,
                 browser_args: Optional[List[str]] = None,
                 context_options: Optional[Dict[str, Any]] = None,
                 launcher: Optional[BrowserLauncher] = None):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if min_size < 0 or min_size > max_size:
            raise ValueError("min_size must be between 0 and max_size")

        self.min_size = min_size
        self.max_size = max_size
        self.acquire_timeout = acquire_timeout
        self.create_attempts = max(1, create_attempts)
        self.create_retry_delay = create_retry_delay
        self._headless = headless
        self._browser_args = list(browser_args or [])
        self._context_options = {'ignore_https_errors': True}
        if context_options:
            self._context_options.update(context_options)
        self._launcher = launcher

        self._idle: Deque[PoolEntry] = deque()
        self._checked_out: Set[PoolEntry] = set()
        self._creating = 0
        self._condition = asyncio.Condition()
        self._playwright = None
        self._opened = False

    @property
    def name(self) -> str:
        """Return the name of the service."""
        return "browser_pool"

    @property
    def size(self) -> int:
        """Number of live entries (idle and checked out)."""
        return len(self._idle) + len(self._checked_out)

    async def open(self) -> None:
        """Start the driver runtime and pre-warm ``min_size`` entries."""
        if self._opened:
            return

        if self._launcher is None:
            self._playwright = await async_playwright().start()
            self._launcher = self._launch_chromium

        self._opened = True
        try:
            for _ in range(self.min_size):
                entry = await self._create_entry()
                async with self._condition:
                    self._idle.append(entry)
        except InstanceCreationFailed:
            await self.close()
            raise

        logger.info(f"Browser pool opened with {self.size} warm entries (max {self.max_size})")

    async def close(self) -> None:
        """Destroy every entry and stop the driver runtime."""
        if not self._opened:
            return

        async with self._condition:
            entries = list(self._idle) + list(self._checked_out)
            self._idle.clear()
            self._checked_out.clear()
            self._opened = False
            self._condition.notify_all()

        for entry in entries:
            await entry.destroy()

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")
            self._playwright = None
            self._launcher = None

        logger.info(f"Browser pool closed, {len(entries)} entries destroyed")

    async def _launch_chromium(self) -> Browser:
        return await self._playwright.chromium.launch(
            headless=self._headless,
            args=self._browser_args,
        )

    async def _create_entry(self) -> PoolEntry:
        """Launch a browser and wrap it in a PoolEntry."""
        try:
            browser = await self._launcher()
        except Exception as e:
            logger.error(f"Failed to launch browser instance: {e}")
            raise InstanceCreationFailed(str(e)) from e

        entry = PoolEntry(f"browser_{uuid.uuid4().hex[:8]}", browser, dict(self._context_options))
        logger.debug(f"Created pool entry {entry.entry_id}")
        return entry

    async def acquire(self) -> PoolEntry:
        """
        Check out an entry, creating one lazily when below ``max_size``.

        Raises:
            PoolExhausted: if no entry becomes available within acquire_timeout
            InstanceCreationFailed: if a new browser could not be started
        """
        if not self._opened:
            raise RuntimeError("Browser pool is not open")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.acquire_timeout
        stale: List[PoolEntry] = []

        try:
            async with self._condition:
                while True:
                    while self._idle:
                        entry = self._idle.popleft()
                        if entry.is_healthy():
                            self._checked_out.add(entry)
                            entry.update_usage()
                            return entry
                        logger.info(f"Discarding disconnected entry {entry.entry_id}")
                        stale.append(entry)
                        self._condition.notify()

                    if self.size + self._creating < self.max_size:
                        self._creating += 1
                        break

                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        raise PoolExhausted(self.acquire_timeout, self.max_size)
                    try:
                        await asyncio.wait_for(self._condition.wait(), remaining)
                    except asyncio.TimeoutError:
                        raise PoolExhausted(self.acquire_timeout, self.max_size)
                    if not self._opened:
                        raise RuntimeError("Browser pool closed while waiting")
        finally:
            for entry in stale:
                await entry.destroy()

        try:
            entry = await self._create_entry()
        except BaseException:
            async with self._condition:
                self._creating -= 1
                self._condition.notify()
            raise

        async with self._condition:
            self._creating -= 1
            self._checked_out.add(entry)
            entry.update_usage()
        return entry

    async def release(self, entry: PoolEntry) -> None:
        """Return an entry to the idle set. Unknown entries are ignored."""
        async with self._condition:
            if entry not in self._checked_out:
                logger.warning(f"Release of entry {entry.entry_id} that is not checked out ignored")
                return
            self._checked_out.discard(entry)

            if entry.is_healthy():
                self._idle.append(entry)
                self._condition.notify()
                return

            self._condition.notify()

        logger.info(f"Evicting unhealthy entry {entry.entry_id} on release")
        await entry.destroy()

    async def evict(self, entry: PoolEntry) -> None:
        """Remove an entry from the pool and destroy it."""
        async with self._condition:
            self._checked_out.discard(entry)
            try:
                self._idle.remove(entry)
            except ValueError:
                pass
            self._condition.notify()
        await entry.destroy()

    async def _acquire_with_retry(self) -> PoolEntry:
        try:
            async for attempt in fixed_backoff_retrying(
                max_attempts=self.create_attempts,
                wait_time=self.create_retry_delay,
                exception_types=(InstanceCreationFailed,),
            ):
                with attempt:
                    return await self.acquire()
        except RetryError as e:
            raise e.last_attempt.exception()

    @asynccontextmanager
    async def lease(self):
        """
        Acquire an entry for the duration of a block and always release it.

        Creation failures are retried by acquiring a fresh entry, up to
        ``create_attempts`` times.
        """
        entry = await self._acquire_with_retry()
        try:
            yield entry
        finally:
            await self.release(entry)

    def stats(self) -> Dict[str, int]:
        """Snapshot of pool bookkeeping."""
        return {
            'size': self.size,
            'idle': len(self._idle),
            'checked_out': len(self._checked_out),
            'creating': self._creating,
            'min_size': self.min_size,
            'max_size': self.max_size,
        }

    def get_service_health(self) -> Dict[str, Any]:
        health = super().get_service_health()
        health['metrics'] = self.stats()
        return health
