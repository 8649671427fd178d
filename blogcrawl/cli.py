"""blogcrawl CLI: crawl a paginated blog and write its posts to CSV.

Usage:
    blogcrawl <baseURL> <outputFile>
    blogcrawl https://iandiwatching.blogspot.com posts.csv --workers 8
"""

from __future__ import annotations

import asyncio
import logging
import time

import click

from blogcrawl.common.exceptions import SinkWriteError
from blogcrawl.common.request_manager import Fetcher, FetcherConfig
from blogcrawl.data_types import Record
from blogcrawl.driver.async_driver import (
    AsyncCrawlDriver,
    CrawlConfig,
    CrawlStats,
)
from blogcrawl.driver.callbacks import log_record, write_records_csv

logger = logging.getLogger(__name__)

USAGE_EXAMPLE = "blogcrawl https://iandiwatching.blogspot.com posts.csv"


async def crawl_site(
    base_url: str,
    fetcher_config: FetcherConfig,
    crawl_config: CrawlConfig,
    verbose: bool = False,
) -> tuple[list[Record], CrawlStats]:
    """Run a full crawl with the default Blogger extractors."""
    async with Fetcher(fetcher_config) as fetcher:
        driver = AsyncCrawlDriver(
            fetcher,
            config=crawl_config,
            on_record=log_record() if verbose else None,
        )
        records = await driver.run(base_url)
    return records, driver.stats


@click.command(
    epilog=f"\b\nExample:\n    {USAGE_EXAMPLE}",
)
@click.argument("base_url", required=False, metavar="BASE_URL")
@click.argument(
    "output_file",
    required=False,
    metavar="OUTPUT_FILE",
    type=click.Path(dir_okay=False),
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=5,
    show_default=True,
    help="Number of concurrent post workers.",
)
@click.option(
    "--queue-size",
    type=click.IntRange(min=1),
    default=100,
    show_default=True,
    help="Capacity of the work and results queues.",
)
@click.option(
    "--max-pages",
    type=click.IntRange(min=1),
    default=None,
    help="Stop following older-posts links after this many listing pages.",
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=3,
    show_default=True,
    help="Attempts per URL before giving up.",
)
@click.option(
    "--backoff",
    type=click.FloatRange(min=0),
    default=1.0,
    show_default=True,
    help="Seconds to wait before retry n, multiplied by n.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=10.0,
    show_default=True,
    help="Per-request timeout in seconds.",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
@click.version_option(package_name="blogcrawl")
def cli(
    base_url: str | None,
    output_file: str | None,
    workers: int,
    queue_size: int,
    max_pages: int | None,
    max_attempts: int,
    backoff: float,
    timeout: float,
    verbose: bool,
) -> None:
    """Crawl BASE_URL and its older-posts pages, writing posts to OUTPUT_FILE.

    Each post becomes one CSV row with its title, embedded video URL and
    labels.
    """
    if base_url is None or output_file is None:
        raise click.UsageError(
            f"Expected <baseURL> <outputFile>.\nExample: {USAGE_EXAMPLE}"
        )

    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(
        logging.INFO if verbose else logging.WARNING
    )

    fetcher_config = FetcherConfig(
        max_attempts=max_attempts,
        backoff_seconds=backoff,
        timeout=timeout,
    )
    crawl_config = CrawlConfig(
        num_workers=workers,
        work_queue_size=queue_size,
        results_queue_size=queue_size,
        max_pages=max_pages,
    )

    start = time.monotonic()
    records, stats = asyncio.run(
        crawl_site(base_url, fetcher_config, crawl_config, verbose)
    )

    try:
        write_records_csv(records, output_file)
    except SinkWriteError as e:
        logger.error(e.message, extra={"destination": e.destination})
        raise click.ClickException(e.message) from e

    stats.elapsed_seconds = time.monotonic() - start
    logger.info(stats.summary())


def main() -> None:
    """Entry point for the ``blogcrawl`` console script."""
    cli()
