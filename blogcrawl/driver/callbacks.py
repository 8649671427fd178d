"""Output functions for collected records.

The CSV writers are the end of a run: the driver hands its collected
records to write_records_csv(). The callback factories below plug into the
driver's on_record parameter for side effects while the run is in progress.

Example::

    from blogcrawl.driver.callbacks import write_records_csv

    records = await driver.run(seed_url)
    write_records_csv(records, "posts.csv")
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import TextIO

from blogcrawl.common.exceptions import SinkWriteError
from blogcrawl.data_types import Record

logger = logging.getLogger(__name__)

CSV_HEADER = ("Title", "Video URL", "Tags")
TAG_DELIMITER = ", "


def record_to_row(record: Record) -> list[str]:
    """Convert a Record into a CSV row, joining tags with TAG_DELIMITER."""
    return [record.title, record.primary_link, TAG_DELIMITER.join(record.tags)]


def write_records_to_file(
    records: Iterable[Record], file_handle: TextIO
) -> int:
    """Write the header and one row per record to an open file.

    The caller is responsible for opening the file with ``newline=""``
    and closing it.

    Returns:
        The number of rows written, excluding the header.
    """
    writer = csv.writer(file_handle, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    count = 0
    for record in records:
        writer.writerow(record_to_row(record))
        count += 1
    return count


def write_records_csv(
    records: Iterable[Record], destination: Path | str
) -> int:
    """Write records to a CSV file, replacing any existing file.

    Args:
        records: Records to write, in output order.
        destination: Path of the CSV file.

    Returns:
        The number of rows written, excluding the header.

    Raises:
        SinkWriteError: If the file cannot be created or written.
    """
    path = Path(destination)
    try:
        with path.open("w", newline="", encoding="utf-8") as f:
            count = write_records_to_file(records, f)
    except OSError as e:
        raise SinkWriteError(destination=str(path), reason=str(e)) from e

    logger.info(f"Wrote {count} records to {path}")
    return count


def log_record(
    level: int = logging.DEBUG,
) -> Callable[[Record], Awaitable[None]]:
    """Create an on_record callback that logs each record as it arrives.

    Example::

        driver = AsyncCrawlDriver(fetcher, on_record=log_record(logging.INFO))
    """

    async def callback(record: Record) -> None:
        logger.log(
            level,
            f"Collected: {record.title}",
            extra={"title": record.title, "tags": list(record.tags)},
        )

    return callback


def count_records(
    counter: list[int] | None = None,
) -> Callable[[Record], Awaitable[None]]:
    """Create an on_record callback that counts records.

    The count is stored at index 0 of a mutable list so it can be read after
    the run finishes.

    Example::

        count = [0]
        driver = AsyncCrawlDriver(fetcher, on_record=count_records(count))
        await driver.run(seed_url)
        print(f"Collected {count[0]} records")
    """
    if counter is None:
        counter = [0]

    async def callback(record: Record) -> None:
        counter[0] += 1

    return callback
