"""Page and record extractors.

Extractors hold everything site-specific: which links on a listing page are
items, which one is the next page, and how an item page maps onto a Record.
The driver depends only on the two protocols below.

The Blogger implementations match the default Blogspot theme::

    <h3 class="post-title"><a href="/2024/01/post.html">Title</a></h3>
    <a class="blog-pager-older-link" href="/search?updated-max=...">Older</a>
    <iframe src="https://www.youtube.com/embed/..."></iframe>
    <span class="post-labels"><a>tag</a>, <a>tag</a></span>
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from urllib.parse import urljoin

from blogcrawl.data_types import Document, Record


@runtime_checkable
class PageExtractor(Protocol):
    """Finds item links and the next-page link on a listing page."""

    def extract_links(
        self, document: Document, current_url: str
    ) -> tuple[list[str], str | None]:
        """Return absolute item URLs and the absolute next-page URL, if any.

        Raises:
            ExtractError: If the page does not have the expected structure.
        """
        ...


@runtime_checkable
class RecordExtractor(Protocol):
    """Builds a Record from an item page."""

    def extract_record(self, document: Document) -> Record:
        """Return the page's Record.

        Raises:
            ExtractError: If the page does not have the expected structure.
        """
        ...


class BloggerPageExtractor:
    """PageExtractor for Blogger listing pages."""

    item_link_selector = "h3.post-title a"
    next_page_selector = "a.blog-pager-older-link"

    def extract_links(
        self, document: Document, current_url: str
    ) -> tuple[list[str], str | None]:
        item_urls = [
            urljoin(current_url, link.get("href"))
            for link in document.root.checked_css(
                self.item_link_selector, "post links", min_count=0
            )
            if link.get("href")
        ]

        next_links = document.root.checked_css(
            self.next_page_selector, "older posts link", min_count=0
        )
        next_page_url = None
        for link in next_links:
            href = link.get("href")
            if href:
                next_page_url = urljoin(current_url, href)
                break

        return item_urls, next_page_url


class BloggerRecordExtractor:
    """RecordExtractor for Blogger post pages.

    The post title is required. The embedded video and the labels are
    optional: a post without them yields an empty link and no tags.
    """

    title_selector = "h3.post-title"
    link_selector = "iframe[src]"
    tag_selector = "span.post-labels a"

    def extract_record(self, document: Document) -> Record:
        title = document.root.checked_css(
            self.title_selector, "post title"
        )[0].text_content()

        iframes = document.root.checked_css(
            self.link_selector, "embedded video", min_count=0
        )
        primary_link = iframes[0].get("src") if iframes else ""

        tags = tuple(
            tag.text_content()
            for tag in document.root.checked_css(
                self.tag_selector, "post labels", min_count=0
            )
        )

        return Record(title=title, primary_link=primary_link, tags=tags)
