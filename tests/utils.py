"""Test utilities for blogcrawl tests.

Most driver tests run against an in-process httpx.MockTransport rather than
the aiohttp server, so they can stall, fail or count requests per URL.
"""

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from blogcrawl.common.request_manager import Fetcher, FetcherConfig
from blogcrawl.data_types import Document, Record
from tests.mock_server import generate_listing_html

Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]


def make_document(url: str, html: str, status_code: int = 200) -> Document:
    """Parse an HTML string the same way the Fetcher does."""
    response = httpx.Response(
        status_code,
        content=html.encode("utf-8"),
        request=httpx.Request("GET", url),
    )
    return Fetcher.parse(response)


def listing_page(item_hrefs: list[str], older_href: str | None = None) -> str:
    """Build a listing page from item hrefs, titled after the href."""
    return generate_listing_html(
        [(href, href) for href in item_hrefs], older_href
    )


class FakeSite:
    """Routes URLs to canned HTML, recording every request.

    Attributes:
        pages: Mapping of absolute URL to HTML body. Unknown URLs get 404.
        hits: Number of requests per URL.
        gate: When set to an unset asyncio.Event, item pages (URLs not in
            ``listing_urls``) wait for it before responding.
    """

    def __init__(
        self,
        pages: dict[str, str],
        listing_urls: set[str] | None = None,
    ) -> None:
        self.pages = pages
        self.listing_urls = listing_urls or set()
        self.hits: Counter[str] = Counter()
        self.user_agents: list[str] = []
        self.gate: asyncio.Event | None = None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.hits[url] += 1
        self.user_agents.append(request.headers.get("User-Agent", ""))
        if self.gate is not None and url not in self.listing_urls:
            await self.gate.wait()
        if url not in self.pages:
            return httpx.Response(404, text="Not found")
        return httpx.Response(200, text=self.pages[url])

    def fetcher(self, config: FetcherConfig | None = None) -> Fetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return Fetcher(
            config or FetcherConfig(backoff_seconds=0.0), client=client
        )


def post_page(title: str, video: str = "", tags: list[str] | None = None) -> str:
    """Build a minimal post page."""
    iframe = f'<iframe src="{video}"></iframe>' if video else ""
    labels = "".join(f"<a>{tag}</a>" for tag in tags or [])
    return (
        f'<html><body><h3 class="post-title">{title}</h3>{iframe}'
        f'<span class="post-labels">{labels}</span></body></html>'
    )


def collect_records() -> tuple[Callable[[Record], Awaitable[None]], list[Any]]:
    """Create an on_record callback that collects records in a list.

    Returns:
        A tuple of (async_callback_function, records_list).
    """
    records: list[Any] = []

    async def callback(record: Record) -> None:
        records.append(record)

    return callback, records
