"""CLI for exporting all processed vulnerabilities to a JSON report."""

from __future__ import annotations

import argparse
import logging
import sys

import yaml
from dotenv import load_dotenv

from checkpoint.store import create_store
from common.cli_helpers import save_json_local, setup_logging
from common.config import load_config
from common.errors import StoreError
from generate_report.generate_report import build_report

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def parse_generate_report_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export all stored classifications")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--output",
        default="vulnerability_report.json",
        help="Output file path for the report (default: vulnerability_report.json)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_generate_report_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return 1

    try:
        store = create_store(config.store)
    except (StoreError, ValueError) as e:
        logger.error("Failed to initialize checkpoint store: %s", e)
        return 1

    try:
        logger.info("Fetching all processed vulnerabilities...")
        records = build_report(store)
    except StoreError as e:
        logger.error("Failed to fetch vulnerabilities: %s", e)
        return 1
    finally:
        store.close()

    if not records:
        logger.warning("No vulnerabilities found in database")
        return 0

    filepath = save_json_local(records, args.output)
    logger.info("Report generated successfully: %s (%d vulnerabilities)", filepath, len(records))
    return 0


if __name__ == "__main__":
    sys.exit(main())
