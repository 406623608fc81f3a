"""Helper functions for debug_classifier CLI."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from fetch_feed.models import VulnerabilityDetail


def parse_debug_classifier_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for debug_classifier."""

    parser = argparse.ArgumentParser(
        description="Run the classifier against a single vulnerability",
        epilog=(
            "Examples:\n"
            "  debug_classifier --vuln GHSA-xxxx-xxxx-xxxx\n"
            "  debug_classifier --sample samples/npm-GHSA-7rqq-prvp-x9jh.json "
            "--prompt \"Analyze this vulnerability for RCE potential\""
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--prompt",
        default=None,
        help="Custom user prompt; prints the raw model reply instead of a classification",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--vuln", help="Vulnerability ID to fetch from the OSV API")
    source.add_argument("--sample", help="Path to JSON file with vulnerability data")

    return parser.parse_args(argv)


def load_vulnerability_from_file(path: str) -> VulnerabilityDetail:
    """Load a vulnerability from an OSV-format JSON file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON
        KeyError: If the document has no ``id``
    """
    with Path(path).open() as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return VulnerabilityDetail.from_dict(data)
