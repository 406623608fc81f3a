"""Parse the two-column modified index into feed records."""

import csv
import logging
import re
from typing import Iterable

from common.errors import DecodeError, SkipRow
from fetch_feed.models import FeedRecord

logger = logging.getLogger(__name__)

# ISO-8601 in UTC with a Z suffix; values of equal precision order correctly as strings.
SORTABLE_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$")


def is_sortable_timestamp(value: str) -> bool:
    """Return True if ``value`` compares correctly as a plain string."""
    return bool(SORTABLE_TIMESTAMP.match(value))


def parse_row(row: list[str]) -> FeedRecord:
    """Convert one CSV row into a FeedRecord.

    Raises:
        SkipRow: If the row does not have exactly two columns or the path
            is not exactly ``<ecosystem>/<id>`` with both parts non-empty.
    """
    if len(row) != 2:
        raise SkipRow(f"expected 2 columns, got {len(row)}")

    modified, full_path = row
    parts = full_path.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise SkipRow(f"malformed path: {full_path!r}")

    return FeedRecord(modified=modified, ecosystem=parts[0], vuln_id=parts[1])


def parse_index(lines: Iterable[str]) -> list[FeedRecord]:
    """Parse index lines into records, dropping malformed rows.

    Raises:
        DecodeError: If the payload cannot be read as CSV at all.
    """
    records = []
    skipped = 0

    try:
        for row in csv.reader(lines):
            try:
                records.append(parse_row(row))
            except SkipRow:
                skipped += 1
    except (csv.Error, UnicodeDecodeError) as exc:
        raise DecodeError(f"reading index: {exc}") from exc

    if skipped:
        logger.debug("Skipped %d malformed index rows", skipped)
    return records
