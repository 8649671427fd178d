"""Asynchronous crawl driver.

The driver runs a three-stage pipeline on one event loop:

1. The frontier fetches listing pages, pushes item URLs onto a bounded work
   queue, and spawns a new branch for every "next page" link it finds.
2. A fixed pool of workers pulls item URLs, fetches each item page and
   extracts a Record onto a bounded results queue.
3. A single collector drains the results queue into a list.

The queues are closed with sentinels in strict order. The work queue is
closed only after the frontier task group has exited, and the results
queue only after every worker has returned.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any
from urllib.parse import urldefrag

from blogcrawl.common.exceptions import (
    ExtractError,
    FetchError,
    ParseError,
)
from blogcrawl.common.request_manager import Fetcher
from blogcrawl.data_types import Record
from blogcrawl.extractors import (
    BloggerPageExtractor,
    BloggerRecordExtractor,
    PageExtractor,
    RecordExtractor,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrawlConfig:
    """Immutable pipeline settings.

    Attributes:
        num_workers: Number of concurrent item workers.
        work_queue_size: Capacity of the item URL queue. The frontier blocks
            when it is full.
        results_queue_size: Capacity of the record queue. Workers block
            when it is full.
        max_pages: Maximum number of listing pages to crawl. None means no
            limit beyond the visited-page guard.
    """

    num_workers: int = 5
    work_queue_size: int = 100
    results_queue_size: int = 100
    max_pages: int | None = None

    def __post_init__(self) -> None:
        if self.num_workers < 1:
            raise ValueError("num_workers must be at least 1")
        if self.work_queue_size < 1 or self.results_queue_size < 1:
            raise ValueError("queue sizes must be at least 1")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError("max_pages must be at least 1")


@dataclass
class CrawlStats:
    """Counters for a single run.

    Attributes:
        pages_crawled: Listing pages fetched and parsed.
        pages_failed: Listing pages that failed to fetch, parse or extract.
        pages_skipped: Next-page links not followed (already visited or
            over max_pages).
        items_discovered: Item URLs pushed onto the work queue.
        items_failed: Item pages that failed to fetch, parse or extract.
        records_collected: Records received by the collector.
        elapsed_seconds: Wall-clock duration of the run.
    """

    pages_crawled: int = 0
    pages_failed: int = 0
    pages_skipped: int = 0
    items_discovered: int = 0
    items_failed: int = 0
    records_collected: int = 0
    elapsed_seconds: float = 0.0

    def summary(self) -> str:
        return (
            f"Crawling completed in {self.elapsed_seconds:.2f}s. "
            f"Total posts: {self.records_collected}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging extras."""
        return asdict(self)


class AsyncCrawlDriver:
    """Crawls a paginated site and collects one Record per item page.

    Example::

        async with Fetcher() as fetcher:
            driver = AsyncCrawlDriver(fetcher, config=CrawlConfig(num_workers=5))
            records = await driver.run("https://example.blogspot.com")
        write_records_csv(records, "posts.csv")
    """

    def __init__(
        self,
        fetcher: Fetcher | None = None,
        page_extractor: PageExtractor | None = None,
        record_extractor: RecordExtractor | None = None,
        config: CrawlConfig | None = None,
        on_record: Callable[[Record], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            fetcher: Fetcher used for every page. If None, a Fetcher with
                default settings is created and closed when run() returns.
            page_extractor: Finds item and next-page links on listing
                pages. Defaults to BloggerPageExtractor.
            record_extractor: Builds Records from item pages. Defaults to
                BloggerRecordExtractor.
            config: Pipeline settings. Defaults to CrawlConfig().
            on_record: Optional async callback awaited by the collector for
                each record, in arrival order.
        """
        if fetcher is not None:
            self.fetcher = fetcher
            self._owns_fetcher = False
        else:
            self.fetcher = Fetcher()
            self._owns_fetcher = True

        self.page_extractor = page_extractor or BloggerPageExtractor()
        self.record_extractor = record_extractor or BloggerRecordExtractor()
        self.config = config or CrawlConfig()
        self.on_record = on_record

        self.stats = CrawlStats()
        self.work_queue: asyncio.Queue[str | None] = asyncio.Queue(
            maxsize=self.config.work_queue_size
        )
        self.results_queue: asyncio.Queue[Record | None] = asyncio.Queue(
            maxsize=self.config.results_queue_size
        )
        # Listing pages already claimed by a branch, fragment stripped.
        self._visited: set[str] = set()

    async def run(self, seed_url: str) -> list[Record]:
        """Crawl from seed_url until every page and item is processed.

        Failed pages and items are logged and skipped. Any other exception
        cancels the pipeline and propagates.

        Returns:
            Records in the order the collector received them.
        """
        self.stats = CrawlStats()
        self._visited = set()
        self.work_queue = asyncio.Queue(maxsize=self.config.work_queue_size)
        self.results_queue = asyncio.Queue(
            maxsize=self.config.results_queue_size
        )
        records: list[Record] = []

        start = time.monotonic()
        try:
            async with asyncio.TaskGroup() as pipeline:
                pipeline.create_task(self._collect(records))
                workers = [
                    pipeline.create_task(self._worker(i))
                    for i in range(self.config.num_workers)
                ]

                await self.crawl(seed_url)
                for _ in workers:
                    await self.work_queue.put(None)

                await asyncio.gather(*workers)
                await self.results_queue.put(None)
        finally:
            self.stats.elapsed_seconds = time.monotonic() - start
            if self._owns_fetcher:
                await self.fetcher.close()

        logger.info(
            f"Crawl finished: {self.stats.pages_crawled} pages, "
            f"{self.stats.items_discovered} posts found, "
            f"{self.stats.items_failed} failed",
            extra=self.stats.to_dict(),
        )
        return records

    # ------------------------------------------------------------------
    # Frontier
    # ------------------------------------------------------------------

    async def crawl(self, seed_url: str) -> None:
        """Run the frontier from seed_url, returning once every branch ends.

        Item URLs are pushed onto ``self.work_queue``; the queue is left
        open for the caller to close.
        """
        async with asyncio.TaskGroup() as frontier:
            self._spawn_branch(frontier, seed_url)

    def _spawn_branch(self, frontier: asyncio.TaskGroup, url: str) -> bool:
        """Start a branch for a listing page unless it is already claimed.

        Runs without awaiting, so the visited check and claim are atomic
        with respect to other branches.

        Returns:
            True if a branch was started.
        """
        page_key = urldefrag(url).url
        if page_key in self._visited:
            self.stats.pages_skipped += 1
            logger.warning(
                f"Not following {url}: page already visited",
                extra={"url": url},
            )
            return False

        max_pages = self.config.max_pages
        if max_pages is not None and len(self._visited) >= max_pages:
            self.stats.pages_skipped += 1
            logger.info(
                f"Not following {url}: page limit of {max_pages} reached",
                extra={"url": url},
            )
            return False

        self._visited.add(page_key)
        frontier.create_task(self._crawl_page(frontier, url))
        return True

    async def _crawl_page(self, frontier: asyncio.TaskGroup, url: str) -> None:
        """One frontier branch: fetch, discover, then recurse or stop."""
        try:
            document = await self.fetcher.fetch(url)
            item_urls, next_page_url = self.page_extractor.extract_links(
                document, document.url
            )
        except (FetchError, ParseError, ExtractError) as e:
            self.stats.pages_failed += 1
            logger.error(
                f"Error crawling page {url}: {e}",
                extra={"url": url, "error_type": type(e).__name__},
            )
            return

        self.stats.pages_crawled += 1

        for item_url in item_urls:
            logger.info(f"Found post: {item_url}")
            await self.work_queue.put(item_url)
            self.stats.items_discovered += 1

        if next_page_url is None:
            logger.info(f"No more pages after {url}")
            return

        logger.info(f"Found next page: {next_page_url}")
        self._spawn_branch(frontier, next_page_url)

    # ------------------------------------------------------------------
    # Worker pool and collector
    # ------------------------------------------------------------------

    async def _worker(self, worker_id: int) -> None:
        """Process item URLs until the work queue is closed.

        Args:
            worker_id: Identifier for this worker (for debugging).
        """
        logger.debug(f"Worker {worker_id} started")
        while True:
            item_url = await self.work_queue.get()
            if item_url is None:
                break

            try:
                document = await self.fetcher.fetch(item_url)
                record = self.record_extractor.extract_record(document)
            except (FetchError, ParseError, ExtractError) as e:
                self.stats.items_failed += 1
                logger.error(
                    f"Error extracting data from {item_url}: {e}",
                    extra={"url": item_url, "error_type": type(e).__name__},
                )
                continue

            await self.results_queue.put(record)
        logger.debug(f"Worker {worker_id} exiting")

    async def _collect(self, records: list[Record]) -> None:
        """Drain the results queue into records until it is closed."""
        while True:
            record = await self.results_queue.get()
            if record is None:
                break
            records.append(record)
            self.stats.records_collected += 1
            if self.on_record:
                await self.on_record(record)
