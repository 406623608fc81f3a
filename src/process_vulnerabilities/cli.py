"""CLI for classifying new and updated vulnerabilities."""

from __future__ import annotations

import logging
import sys

import yaml
from dotenv import load_dotenv

from checkpoint.store import create_store
from classify_vulnerabilities.llm import create_backend
from common.cli_helpers import install_cancel_handler, setup_logging
from common.config import load_config
from common.errors import (
    DecodeError,
    DownloadError,
    ModelError,
    ProcessError,
    RunCancelled,
    StoreError,
)
from process_vulnerabilities.helpers import parse_process_vulnerabilities_args
from process_vulnerabilities.models import RunMetrics
from process_vulnerabilities.process_vulnerabilities import log_summary, run_pipeline

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def main(argv: list[str] | None = None) -> int:
    args = parse_process_vulnerabilities_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return EXIT_FAILURE

    try:
        store = create_store(config.store)
    except (StoreError, ValueError) as e:
        logger.error("Failed to initialize checkpoint store: %s", e)
        return EXIT_FAILURE

    try:
        backend = create_backend(config.llm)
    except (ModelError, ValueError) as e:
        logger.error("Failed to initialize LLM client: %s", e)
        store.close()
        return EXIT_FAILURE

    cancel_event = install_cancel_handler()
    metrics = RunMetrics()
    exit_code = EXIT_OK

    try:
        watermark = run_pipeline(
            config,
            backend,
            store,
            metrics,
            resume=args.resume,
            batch_size=args.batch,
            cancel_event=cancel_event,
        )
        logger.info("Processing completed successfully (watermark: %s)", watermark or "none")
    except RunCancelled as e:
        logger.warning("Processing cancelled: %s", e.cause)
        exit_code = EXIT_CANCELLED
    except (DownloadError, DecodeError) as e:
        logger.error("Failed to obtain vulnerability index: %s", e)
        exit_code = EXIT_FAILURE
    except ProcessError as e:
        logger.error("Processing failed: %s", e)
        exit_code = EXIT_FAILURE
    finally:
        log_summary(metrics)
        store.close()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
