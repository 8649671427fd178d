"""Fetcher for retrieving and parsing pages.

The Fetcher encapsulates the HTTP client, the retry/backoff loop and the
conversion of a response body into a Document. Drivers only ever see a
Document or one of FetchError / ParseError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx
from lxml import etree, html

from blogcrawl.common.checked_html import CheckedHtmlElement
from blogcrawl.common.exceptions import FetchError, ParseError
from blogcrawl.data_types import Document

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass(frozen=True)
class FetcherConfig:
    """Immutable HTTP client settings.

    Attributes:
        user_agent: Value of the User-Agent header sent with every request.
        max_attempts: Total attempts per URL, including the first.
        backoff_seconds: Base delay. The wait before retry n is
            ``backoff_seconds * n``.
        timeout: Per-request timeout in seconds.
    """

    user_agent: str = DEFAULT_USER_AGENT
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must not be negative")

    def backoff_for(self, retry: int) -> float:
        """Delay in seconds before the given retry (1-based)."""
        return self.backoff_seconds * retry


class Fetcher:
    """Fetches URLs with linear backoff and parses them into Documents.

    Example::

        async with Fetcher(FetcherConfig(max_attempts=3)) as fetcher:
            document = await fetcher.fetch("https://example.blogspot.com/")
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the fetcher.

        Args:
            config: Client settings. Defaults to FetcherConfig().
            client: Optional pre-built client. When given, the caller owns
                it and the User-Agent is sent per request instead.
            sleep: Coroutine function used to wait between attempts.
        """
        self.config = config or FetcherConfig()
        self._sleep = sleep
        self._headers = {"User-Agent": self.config.user_agent}

        if client is not None:
            self._client = client
            self._owns_client = False
        else:
            self._client = httpx.AsyncClient(
                headers=self._headers,
                timeout=self.config.timeout,
                follow_redirects=True,
            )
            self._owns_client = True

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Fetcher:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def fetch(self, url: str) -> Document:
        """Fetch a URL and parse the body.

        Network errors and non-2xx responses are retried up to
        ``config.max_attempts`` times in total, waiting
        ``config.backoff_for(n)`` seconds before retry n.

        Args:
            url: Absolute URL to fetch.

        Returns:
            The parsed Document.

        Raises:
            FetchError: If every attempt failed.
            ParseError: If the final response body is not parseable HTML.
        """
        max_attempts = self.config.max_attempts
        reason = ""
        status_code: int | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                response = await self._client.get(url, headers=self._headers)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                status_code = None
                reason = f"{type(e).__name__}: {e}"
            else:
                if response.is_success:
                    return self.parse(response)
                status_code = response.status_code
                reason = f"HTTP {response.status_code}"

            if attempt < max_attempts:
                delay = self.config.backoff_for(attempt)
                logger.warning(
                    f"Attempt {attempt}/{max_attempts} for {url} failed "
                    f"({reason}); retrying in {delay:.1f}s",
                    extra={"url": url, "attempt": attempt},
                )
                await self._sleep(delay)

        raise FetchError(
            url=url,
            attempts=max_attempts,
            reason=reason,
            status_code=status_code,
        )

    @staticmethod
    def parse(response: httpx.Response) -> Document:
        """Parse a successful response into a Document.

        Raises:
            ParseError: If lxml cannot build a tree from the body.
        """
        url = str(response.url)
        try:
            tree = html.document_fromstring(response.content, base_url=url)
        except (etree.ParserError, ValueError) as e:
            raise ParseError(url=url, reason=str(e)) from e

        return Document(
            url=url,
            status_code=response.status_code,
            root=CheckedHtmlElement(tree, url),
        )
