"""Tests for the CSV sink and on_record callback factories."""

import csv
import io
import logging
from pathlib import Path

import pytest

from blogcrawl.common.exceptions import SinkWriteError
from blogcrawl.data_types import Record
from blogcrawl.driver.callbacks import (
    CSV_HEADER,
    count_records,
    log_record,
    record_to_row,
    write_records_csv,
    write_records_to_file,
)


@pytest.fixture
def records() -> list[Record]:
    return [
        Record(
            title="Hello, World",
            primary_link="https://v.test/1",
            tags=("a", "b"),
        ),
        Record(title='Say "hi"', primary_link="", tags=()),
        Record(title="Two\nLines", primary_link="https://v.test/3", tags=("x",)),
    ]


class TestRecordToRow:
    """Tests for record_to_row."""

    def test_joins_tags(self):
        """Tags shall be joined with a comma and a space."""
        row = record_to_row(Record(title="T", tags=("a", "b", "c")))

        assert row == ["T", "", "a, b, c"]

    def test_no_tags(self):
        """A record without tags shall have an empty tags field."""
        assert record_to_row(Record(title="T"))[2] == ""


class TestWriteRecordsToFile:
    """Tests for write_records_to_file."""

    def test_header_and_rows(self, records):
        """Output shall be the header followed by one row per record."""
        buffer = io.StringIO()

        count = write_records_to_file(records, buffer)

        assert count == 3
        rows = list(csv.reader(io.StringIO(buffer.getvalue())))
        assert rows[0] == list(CSV_HEADER) == ["Title", "Video URL", "Tags"]
        assert rows[1] == ["Hello, World", "https://v.test/1", "a, b"]
        assert rows[2] == ['Say "hi"', "", ""]
        assert rows[3] == ["Two\nLines", "https://v.test/3", "x"]

    def test_quotes_fields_with_delimiters(self):
        """A title containing a comma shall be quoted; tags render as 'a, b'."""
        buffer = io.StringIO()

        write_records_to_file(
            [Record(title="Hello, World", tags=("a", "b"))], buffer
        )

        assert buffer.getvalue().splitlines()[1] == '"Hello, World",,"a, b"'

    def test_escapes_quotes(self):
        """Embedded quotes shall be doubled inside a quoted field."""
        buffer = io.StringIO()

        write_records_to_file([Record(title='Say "hi"')], buffer)

        assert buffer.getvalue().splitlines()[1] == '"Say ""hi""",,'

    def test_empty_input_writes_header_only(self):
        """No records shall still produce the header line."""
        buffer = io.StringIO()

        assert write_records_to_file([], buffer) == 0
        assert buffer.getvalue() == "Title,Video URL,Tags\n"


class TestWriteRecordsCsv:
    """Tests for write_records_csv."""

    def test_writes_file(self, records, tmp_path: Path):
        """The file shall contain a header plus one row per record."""
        destination = tmp_path / "posts.csv"

        count = write_records_csv(records, destination)

        assert count == 3
        with destination.open(newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert len(rows) == 4
        assert rows[1][0] == "Hello, World"

    def test_overwrites_existing_file(self, tmp_path: Path):
        """An existing file shall be replaced."""
        destination = tmp_path / "posts.csv"
        destination.write_text("stale\n" * 10)

        write_records_csv([Record(title="T")], str(destination))

        assert destination.read_text().splitlines() == [
            "Title,Video URL,Tags",
            "T,,",
        ]

    def test_unwritable_destination_raises(self, tmp_path: Path):
        """A destination in a missing directory shall raise SinkWriteError."""
        destination = tmp_path / "missing" / "posts.csv"

        with pytest.raises(SinkWriteError) as exc_info:
            write_records_csv([Record(title="T")], destination)

        assert exc_info.value.destination == str(destination)
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_directory_destination_raises(self, tmp_path: Path):
        """A directory as destination shall raise SinkWriteError."""
        with pytest.raises(SinkWriteError):
            write_records_csv([Record(title="T")], tmp_path)


class TestCallbackFactories:
    """Tests for on_record callback factories."""

    @pytest.mark.asyncio
    async def test_count_records(self):
        """count_records shall count into the given list."""
        counter = [0]
        callback = count_records(counter)

        await callback(Record(title="a"))
        await callback(Record(title="b"))

        assert counter == [2]

    @pytest.mark.asyncio
    async def test_log_record(self, caplog):
        """log_record shall log each record's title at the given level."""
        callback = log_record(logging.INFO)

        with caplog.at_level(logging.INFO, logger="blogcrawl.driver.callbacks"):
            await callback(Record(title="Logged Title"))

        assert "Collected: Logged Title" in caplog.text
