"""Incrementally select changed records and drive per-record processing in batches."""

import logging
import threading
from dataclasses import replace
from typing import Callable, Iterable

import requests

from common.config import OSVConfig
from common.errors import DecodeError, DownloadError, ProcessError, RunCancelled
from fetch_feed.cache import fetch_index
from fetch_feed.fetch_records import fetch_vulnerability
from fetch_feed.models import FeedRecord, VulnerabilityDetail
from fetch_feed.read_index import is_sortable_timestamp

logger = logging.getLogger(__name__)

ProcessFn = Callable[[VulnerabilityDetail], None]
FetchErrorFn = Callable[[FeedRecord, Exception], None]


def select_records(
    records: Iterable[FeedRecord],
    last_timestamp: str,
    ecosystem: str = "",
) -> list[FeedRecord]:
    """
    Keep records modified after ``last_timestamp`` and in ``ecosystem``.

    Timestamps are compared as strings. Survivors are returned in ascending
    ``modified`` order so the watermark only ever moves forward.
    """
    if last_timestamp and not is_sortable_timestamp(last_timestamp):
        logger.warning(
            "Watermark %r is not a UTC ISO-8601 timestamp; string comparison may misorder records",
            last_timestamp,
        )

    selected = []
    unsortable = 0
    for record in records:
        if last_timestamp and record.modified <= last_timestamp:
            continue
        if ecosystem and record.ecosystem != ecosystem:
            continue
        if not is_sortable_timestamp(record.modified):
            unsortable += 1
        selected.append(record)

    if unsortable:
        logger.warning("%d selected records have non ISO-8601 UTC timestamps", unsortable)

    selected.sort(key=lambda r: r.modified)
    return selected


def process_batch(
    batch: list[FeedRecord],
    config: OSVConfig,
    session: requests.Session,
    process_fn: ProcessFn,
    on_fetch_error: FetchErrorFn | None = None,
) -> None:
    """
    Fetch each record in the batch and hand it to ``process_fn``.

    A record that cannot be fetched is logged, reported to ``on_fetch_error``
    and skipped. A failure raised by ``process_fn`` aborts the batch.

    Raises:
        ProcessError: If ``process_fn`` raises.
    """
    for record in batch:
        try:
            vuln = fetch_vulnerability(
                config.api_url, record.vuln_id, session, timeout=config.request_timeout
            )
        except (DownloadError, DecodeError) as e:
            logger.warning("Failed to fetch vulnerability %s: %s", record.vuln_id, e)
            if on_fetch_error is not None:
                on_fetch_error(record, e)
            continue

        # The index timestamp drives the watermark
        vuln = replace(vuln, modified=record.modified)

        try:
            process_fn(vuln)
        except Exception as exc:
            raise ProcessError(record.vuln_id, exc) from exc


def _check_cancelled(cancel_event: threading.Event | None, attempted: int) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise RunCancelled(f"run cancelled after {attempted} records")


def process_vulnerabilities(
    config: OSVConfig,
    last_timestamp: str,
    batch_size: int,
    process_fn: ProcessFn,
    cancel_event: threading.Event | None = None,
    session: requests.Session | None = None,
    on_fetch_error: FetchErrorFn | None = None,
) -> int:
    """
    Process every record changed since ``last_timestamp``.

    Args:
        config: Feed configuration (index URL, API URL, ecosystem filter, cache)
        last_timestamp: Watermark; empty string processes everything
        batch_size: Number of records per batch
        process_fn: Called once per successfully fetched record
        cancel_event: Checked between batches
        session: requests session shared by index and record fetches
        on_fetch_error: Called with the record and error when a fetch fails

    Returns:
        Number of records attempted

    Raises:
        DownloadError: If the index cannot be downloaded
        DecodeError: If the index cannot be parsed
        ProcessError: If ``process_fn`` fails
        RunCancelled: If ``cancel_event`` is set between batches
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be > 0")

    session = session or requests.Session()
    records = fetch_index(config, session)
    selected = select_records(records, last_timestamp, config.ecosystem)
    logger.info(
        "%d of %d index records need processing", len(selected), len(records)
    )

    attempted = 0
    batch: list[FeedRecord] = []

    for record in selected:
        batch.append(record)
        if len(batch) >= batch_size:
            _check_cancelled(cancel_event, attempted)
            process_batch(batch, config, session, process_fn, on_fetch_error)
            attempted += len(batch)
            logger.info("Processed %d vulnerabilities", attempted)
            batch = []

    if batch:
        _check_cancelled(cancel_event, attempted)
        process_batch(batch, config, session, process_fn, on_fetch_error)
        attempted += len(batch)

    logger.info("Total processed: %d vulnerabilities", attempted)
    return attempted
