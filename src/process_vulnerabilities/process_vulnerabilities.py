"""Classify changed vulnerabilities and checkpoint progress.

A run either starts from scratch (empty watermark) or resumes from the last
watermark stored. Each record is classified, its classification stored, and
only then is the watermark advanced to the record's index timestamp. Store
failures abort the run. Classification failures skip the record.
The stored watermark only ever moves forward, also on a from-scratch run.
"""

import logging
import threading

from checkpoint.store import CheckpointStore
from classify_vulnerabilities.classify_vulnerabilities import classify_vulnerability
from classify_vulnerabilities.llm import StructuredClassifier
from common.config import Config
from common.errors import DecodeError, ModelError, ReadError, ValidationError
from fetch_feed.models import FeedRecord, VulnerabilityDetail
from fetch_feed.process_records import process_vulnerabilities
from process_vulnerabilities.models import RunMetrics

logger = logging.getLogger(__name__)

SUMMARY_INTERVAL = 10


def resolve_start_watermark(store: CheckpointStore, resume: bool) -> str:
    """Return the watermark to start from; "" means from scratch."""
    if not resume:
        return ""

    try:
        watermark = store.get_watermark()
    except ReadError as e:
        logger.warning("Failed to get last timestamp, starting from beginning: %s", e)
        return ""

    if watermark:
        logger.info("Resuming from timestamp: %s", watermark)
    else:
        logger.info("No stored timestamp, starting from beginning")
    return watermark


def read_stored_watermark(store: CheckpointStore) -> str:
    """Return the stored watermark, or "" if it cannot be read."""
    try:
        return store.get_watermark()
    except ReadError as e:
        logger.warning("Failed to get last timestamp: %s", e)
        return ""


class VulnerabilityProcessor:
    """Per-record classify, store and checkpoint step."""

    def __init__(
        self,
        backend: StructuredClassifier,
        store: CheckpointStore,
        metrics: RunMetrics,
        watermark: str = "",
    ) -> None:
        self.backend = backend
        self.store = store
        self.metrics = metrics
        self.watermark = watermark

    def process_vulnerability(self, vuln: VulnerabilityDetail) -> None:
        """
        Classify, store and checkpoint a single vulnerability.

        Raises:
            WriteError: If the classification or the watermark cannot be stored
        """
        self.metrics.attempted += 1

        try:
            classification = classify_vulnerability(vuln, self.backend)
        except (ModelError, DecodeError, ValidationError) as e:
            self.metrics.failed += 1
            logger.warning("Failed to classify vulnerability %s: %s", vuln.id, e)
            return

        self.store.store_classification(vuln.id, classification)

        if vuln.modified > self.watermark:
            self.store.set_watermark(vuln.modified)
            self.watermark = vuln.modified

        self.metrics.record(classification)

        logger.info(
            "Processed vulnerability: %s [%.2fs : in %dt / out %dt (%dt), pub: %s]",
            vuln.id,
            classification.processing_time,
            classification.input_tokens,
            classification.output_tokens,
            classification.total_tokens,
            classification.osv_published,
        )

        if self.metrics.processed % SUMMARY_INTERVAL == 0:
            log_progress(self.metrics)

    def record_fetch_failure(self, record: FeedRecord, error: Exception) -> None:
        """Count a record whose full detail could not be fetched."""
        self.metrics.attempted += 1
        self.metrics.fetch_failed += 1


def log_progress(metrics: RunMetrics) -> None:
    logger.info(
        "--- Summary: %d vulnerabilities processed | Avg processing: %.2fs | "
        "Avg tokens: %d | Total tokens: %d ---",
        metrics.processed,
        metrics.average_processing_time,
        metrics.average_tokens,
        metrics.total_tokens,
    )


def log_summary(metrics: RunMetrics) -> None:
    """Log the final run summary."""
    logger.info("=== FINAL SUMMARY ===")
    logger.info("Vulnerabilities attempted: %d", metrics.attempted)
    logger.info("Vulnerabilities classified: %d", metrics.processed)
    logger.info("Fetch failures: %d", metrics.fetch_failed)
    logger.info("Classification failures: %d", metrics.failed)
    if metrics.processed:
        logger.info("Average processing time: %.2fs", metrics.average_processing_time)
        logger.info("Average tokens per vulnerability: %d", metrics.average_tokens)
        logger.info(
            "Total tokens used: %d (in %d / out %d)",
            metrics.total_tokens,
            metrics.total_input_tokens,
            metrics.total_output_tokens,
        )
        logger.info("Total processing time: %.2fs", metrics.total_processing_time)


def run_pipeline(
    config: Config,
    backend: StructuredClassifier,
    store: CheckpointStore,
    metrics: RunMetrics,
    resume: bool = False,
    batch_size: int | None = None,
    cancel_event: threading.Event | None = None,
) -> str:
    """
    Run one ingestion-and-classification pass.

    Args:
        config: Pipeline configuration
        backend: Structured classification backend
        store: Checkpoint store for classifications and the watermark
        metrics: Counters updated as records complete
        resume: Start from the stored watermark instead of from scratch
        batch_size: Overrides ``config.processing.batch_size``
        cancel_event: Checked between batches

    Returns:
        The watermark after the run

    Raises:
        DownloadError, DecodeError: If the index cannot be obtained
        ProcessError: If a classification or watermark write fails
        RunCancelled: If cancelled between batches
    """
    batch_size = batch_size or config.processing.batch_size
    watermark = resolve_start_watermark(store, resume)
    # A from-scratch run selects everything but never moves the stored watermark back
    stored_watermark = watermark if resume else read_stored_watermark(store)

    logger.info("Starting vulnerability processing with batch size %d", batch_size)

    processor = VulnerabilityProcessor(backend, store, metrics, watermark=stored_watermark)
    process_vulnerabilities(
        config.osv,
        watermark,
        batch_size,
        processor.process_vulnerability,
        cancel_event=cancel_event,
        on_fetch_error=processor.record_fetch_failure,
    )
    return processor.watermark
