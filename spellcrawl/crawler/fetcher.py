"""
Page fetchers returning the visible text of a page.

A fetcher is the fetch environment of a run. It hands out short-lived
sessions, each used by exactly one task and closed when the task ends.
"""

import asyncio
import time
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout, ClientError
from playwright.async_api import (
    async_playwright, Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError
)

from .parser import ContentParser
from ..utils.config import CrawlerConfig


HTML_CONTENT_TYPES = ('text/html', 'application/xhtml+xml')
PLAIN_CONTENT_TYPES = ('text/plain',)

# Runs inside the page: drop non-visible elements and return rendered text
VISIBLE_TEXT_SCRIPT = """
() => {
    document.querySelectorAll('script, style, noscript, template').forEach(el => el.remove());
    return document.body ? document.body.innerText : '';
}
"""


class FetchError(Exception):
    """A page could not be fetched or its text could not be extracted."""
    pass


class FetcherInitError(Exception):
    """The fetch environment could not be started."""
    pass


@dataclass
class FetchResult:
    """Result of a successful fetch."""
    url: str
    text: str
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    fetch_time: float = 0.0


class FetchSession:
    """A single-task session handle."""

    async def fetch(self, url: str) -> FetchResult:
        raise NotImplementedError

    async def close(self):
        raise NotImplementedError


class BaseFetcher:
    """
    Base class for fetch environments.

    Use as an async context manager so that the environment is torn down on
    every exit path.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.stats = {
            'sessions_opened': 0,
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Start the fetch environment."""

    async def close(self):
        """Release the fetch environment."""

    async def open_session(self) -> FetchSession:
        raise NotImplementedError

    @asynccontextmanager
    async def session(self) -> AsyncIterator[FetchSession]:
        """Open a session and close it however the task ends."""
        fetch_session = await self.open_session()
        self.stats['sessions_opened'] += 1
        try:
            yield fetch_session
        finally:
            await fetch_session.close()

    def _record(self, success: bool):
        self.stats['total_requests'] += 1
        if success:
            self.stats['successful_requests'] += 1
        else:
            self.stats['failed_requests'] += 1

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()


class HttpFetchSession(FetchSession):
    """Session backed by its own aiohttp ClientSession."""

    def __init__(self, fetcher: 'HttpFetcher', session: ClientSession):
        self.fetcher = fetcher
        self.session = session

    async def fetch(self, url: str) -> FetchResult:
        start_time = time.time()
        try:
            async with self.session.get(url) as response:
                content_type = response.headers.get('content-type', '').lower()

                if response.status >= 400:
                    raise FetchError(f"HTTP {response.status}")

                if not self.fetcher._is_text_content(content_type):
                    raise FetchError(f"Non-text content type: {content_type or 'unknown'}")

                body = await self.fetcher._read_content_safely(response)
        except (FetchError, asyncio.TimeoutError):
            # aiohttp connect and read timeouts are ClientErrors too; keep them timeouts
            self.fetcher._record(False)
            raise
        except ClientError as e:
            self.fetcher._record(False)
            raise FetchError(f"Client error: {e}") from e

        if any(kind in content_type for kind in HTML_CONTENT_TYPES):
            text = self.fetcher.parser.extract_text(url, body)
        else:
            text = body

        self.fetcher._record(True)
        fetch_time = time.time() - start_time
        self.fetcher.logger.debug(f"Fetched {url}: {response.status} ({len(body)} chars) in {fetch_time:.2f}s")

        return FetchResult(
            url=url,
            text=text,
            status_code=response.status,
            content_type=content_type,
            fetch_time=fetch_time
        )

    async def close(self):
        await self.session.close()


class HttpFetcher(BaseFetcher):
    """
    Fetches pages over plain HTTP and extracts their visible text with BeautifulSoup.
    """

    def __init__(self, user_agent: str, request_timeout: float = 30,
                 max_content_size: int = 10 * 1024 * 1024,
                 parser: Optional[ContentParser] = None):
        super().__init__()
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_content_size = max_content_size
        self.parser = parser or ContentParser()

    async def start(self):
        self.logger.info("HTTP fetcher ready")

    async def close(self):
        self.logger.info(f"HTTP fetcher closed: {self.stats}")

    async def open_session(self) -> HttpFetchSession:
        session = aiohttp.ClientSession(
            timeout=ClientTimeout(total=self.request_timeout),
            headers={'User-Agent': self.user_agent},
            connector=aiohttp.TCPConnector(limit_per_host=2, ttl_dns_cache=300)
        )
        return HttpFetchSession(self, session)

    def _is_text_content(self, content_type: str) -> bool:
        """Check if content type is one we can extract text from."""
        return any(kind in content_type for kind in HTML_CONTENT_TYPES + PLAIN_CONTENT_TYPES)

    async def _read_content_safely(self, response) -> str:
        """
        Read response content with a size limit.

        Args:
            response: aiohttp response object

        Returns:
            Decoded content

        Raises:
            FetchError: if the body exceeds the size limit
        """
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_size:
            raise FetchError(f"Content too large ({content_length} bytes)")

        content_bytes = b''
        async for chunk in response.content.iter_chunked(8192):
            content_bytes += chunk
            if len(content_bytes) > self.max_content_size:
                raise FetchError("Content exceeded size limit during reading")

        encoding = response.charset or 'utf-8'
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            for fallback_encoding in ['utf-8', 'cp1252']:
                try:
                    return content_bytes.decode(fallback_encoding)
                except UnicodeDecodeError:
                    continue
            return content_bytes.decode('latin-1')


class BrowserFetchSession(FetchSession):
    """Session backed by a fresh browser context with one page."""

    def __init__(self, fetcher: 'BrowserFetcher', context, page):
        self.fetcher = fetcher
        self.context = context
        self.page = page

    async def fetch(self, url: str) -> FetchResult:
        start_time = time.time()
        try:
            response = await self.page.goto(
                url,
                wait_until=self.fetcher.wait_until,
                timeout=self.fetcher.request_timeout * 1000,
            )
            if response is not None and response.status >= 400:
                raise FetchError(f"HTTP {response.status}")

            text = await self.page.evaluate(VISIBLE_TEXT_SCRIPT)
        except PlaywrightTimeoutError as e:
            self.fetcher._record(False)
            raise asyncio.TimeoutError(f"Navigation timed out: {e}") from e
        except PlaywrightError as e:
            self.fetcher._record(False)
            raise FetchError(f"Navigation error: {e}") from e
        except FetchError:
            self.fetcher._record(False)
            raise

        self.fetcher._record(True)
        return FetchResult(
            url=url,
            text=text or '',
            status_code=response.status if response is not None else None,
            content_type=response.headers.get('content-type') if response is not None else None,
            fetch_time=time.time() - start_time
        )

    async def close(self):
        await self.context.close()


class BrowserFetcher(BaseFetcher):
    """
    Fetches pages in a headless Playwright browser and returns their rendered text.
    """

    def __init__(self, user_agent: str, request_timeout: float = 30,
                 browser_name: str = 'chromium', headless: bool = True,
                 wait_until: str = 'domcontentloaded'):
        super().__init__()
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.browser_name = browser_name
        self.headless = headless
        self.wait_until = wait_until

        self._playwright = None
        self.browser = None

    async def start(self):
        """Launch the browser."""
        if self.browser is not None:
            return

        try:
            self._playwright = await async_playwright().start()
            browser_type = getattr(self._playwright, self.browser_name)
            self.browser = await browser_type.launch(headless=self.headless)
        except PlaywrightError as e:
            await self.close()
            raise FetcherInitError(f"Could not launch {self.browser_name}: {e}") from e

        self.logger.info(f"Browser fetcher started ({self.browser_name}, wait_until={self.wait_until})")

    async def close(self):
        """Close the browser and stop Playwright."""
        try:
            if self.browser is not None:
                await self.browser.close()
        finally:
            self.browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
        self.logger.info(f"Browser fetcher closed: {self.stats}")

    async def open_session(self) -> BrowserFetchSession:
        if self.browser is None:
            raise FetchError("Browser fetcher is not started")

        context = await self.browser.new_context(user_agent=self.user_agent)
        try:
            page = await context.new_page()
        except PlaywrightError:
            await context.close()
            raise
        return BrowserFetchSession(self, context, page)


def create_fetcher(config: CrawlerConfig) -> BaseFetcher:
    """Build the fetcher selected by the crawler configuration."""
    if config.backend == 'browser':
        return BrowserFetcher(
            user_agent=config.user_agent,
            request_timeout=config.fetch_timeout,
            browser_name=config.browser,
            headless=config.headless,
            wait_until=config.wait_until,
        )

    return HttpFetcher(
        user_agent=config.user_agent,
        request_timeout=config.fetch_timeout,
        max_content_size=config.max_content_size,
    )
