"""CLI for trying the classifier, or a custom prompt, on one vulnerability."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict

import requests
import yaml
from dotenv import load_dotenv

from classify_vulnerabilities.classify_vulnerabilities import classify_vulnerability
from classify_vulnerabilities.llm import create_backend
from common.cli_helpers import setup_logging
from common.config import load_config
from common.errors import PipelineError
from debug_classifier.debug_classifier import classify_with_custom_prompt
from debug_classifier.helpers import load_vulnerability_from_file, parse_debug_classifier_args
from fetch_feed.fetch_records import fetch_vulnerability

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    args = parse_debug_classifier_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return 1

    try:
        if args.vuln:
            logger.info("Fetching vulnerability %s from OSV API...", args.vuln)
            vuln = fetch_vulnerability(
                config.osv.api_url,
                args.vuln,
                requests.Session(),
                timeout=config.osv.request_timeout,
            )
        else:
            logger.info("Loading vulnerability from %s...", args.sample)
            vuln = load_vulnerability_from_file(args.sample)
    except (PipelineError, OSError, ValueError, KeyError) as e:
        logger.error("Failed to load vulnerability: %s", e)
        return 1

    logger.info("Using vulnerability: %s", vuln.id)

    try:
        backend = create_backend(config.llm)
        if args.prompt:
            logger.info("Custom prompt: %s", args.prompt)
            result = classify_with_custom_prompt(vuln, backend, args.prompt)
            print("\n=== DEBUG CLASSIFICATION RESULTS ===")
            print(f"Vulnerability ID: {vuln.id}")
            print(f"Processing Time: {result.processing_time:.2f}s")
            print(f"Input Tokens: {result.input_tokens}")
            print(f"Output Tokens: {result.output_tokens}")
            print(f"Total Tokens: {result.total_tokens}")
            print("\n=== LLM Response ===")
            print(result.raw_response)
        else:
            classification = classify_vulnerability(vuln, backend)
            print(json.dumps(asdict(classification), indent=2))
    except (PipelineError, ValueError) as e:
        logger.error("Classification failed: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
