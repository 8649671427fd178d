"""Data types shared by the fetcher, extractors, driver and sink.

Record is the unit of output. Document is what the fetcher hands to
extractors: the parsed page plus the URL it was fetched from.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from blogcrawl.common.checked_html import CheckedHtmlElement


class Record(BaseModel):
    """One extracted item page.

    Records are frozen: once the extractor builds one, it travels through
    the results queue and into the sink unchanged.

    Attributes:
        title: Item title.
        primary_link: The item's main embedded link (a video URL on the
            default blog layout). Empty when the page has none.
        tags: Item tags, in page order.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    primary_link: str = ""
    tags: tuple[str, ...] = Field(default_factory=tuple)


@dataclass(frozen=True)
class Document:
    """A fetched and parsed HTML page.

    Attributes:
        url: The URL the page was fetched from, after redirects.
        status_code: HTTP status code of the response.
        root: Count-checked wrapper around the parsed document root.
    """

    url: str
    status_code: int
    root: CheckedHtmlElement
