"""Helper functions for process_vulnerabilities CLI."""

from __future__ import annotations

import argparse

from common.cli_helpers import positive_int


def parse_process_vulnerabilities_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for process_vulnerabilities."""

    parser = argparse.ArgumentParser(
        description="Classify new and updated vulnerabilities from the OSV index",
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Resume from the last processed timestamp",
    )
    parser.add_argument(
        "--batch",
        type=positive_int,
        default=None,
        help="Number of vulnerabilities per batch (default: processing.batch_size from config)",
    )
    return parser.parse_args(argv)
