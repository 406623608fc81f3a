"""Common CLI helper utilities."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
from pathlib import Path
from typing import Any


def setup_logging() -> None:
    """Configure standard logging format for CLI tools."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def positive_int(value: str) -> int:
    """Parse a strictly positive integer for argparse arguments.

    Raises:
        argparse.ArgumentTypeError: If the value is not an integer above zero.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"{value!r} must be greater than zero")
    return parsed


def install_cancel_handler() -> threading.Event:
    """Return an event that is set when the process receives SIGINT or SIGTERM."""
    cancel_event = threading.Event()
    logger = logging.getLogger(__name__)

    def _handle(signum: int, _frame: Any) -> None:
        logger.warning("Received %s, finishing current batch", signal.Signals(signum).name)
        cancel_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)
    return cancel_event


def save_json_local(records: list[dict[str, Any]], output_path: str) -> Path:
    """Save records to a local JSON file as an indented array.

    Args:
        records: List of dictionaries to save.
        output_path: Destination file path; parent directories are created.

    Returns:
        Path to the created file.
    """
    filepath = Path(output_path)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with filepath.open("w") as f:
        json.dump(records, f, default=str, ensure_ascii=False, indent=2)
        f.write("\n")
    return filepath
