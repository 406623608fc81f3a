"""Export stored classifications."""

import logging
from dataclasses import asdict
from typing import Any

from checkpoint.store import CheckpointStore

logger = logging.getLogger(__name__)


def build_report(store: CheckpointStore) -> list[dict[str, Any]]:
    """Return every stored classification as a JSON-ready dict."""
    classifications = store.get_all_classifications()
    logger.info("Found %d classified vulnerabilities", len(classifications))
    return [asdict(classification) for classification in classifications]
