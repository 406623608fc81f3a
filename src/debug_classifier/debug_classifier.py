"""Run a custom prompt against a single vulnerability."""

import time
from dataclasses import dataclass

from classify_vulnerabilities.classify_vulnerabilities import build_classification_prompt
from classify_vulnerabilities.llm import StructuredClassifier
from fetch_feed.models import VulnerabilityDetail


@dataclass
class DebugResult:
    processing_time: float
    input_tokens: int
    output_tokens: int
    total_tokens: int
    raw_response: str


def build_debug_prompt(custom_prompt: str, vuln: VulnerabilityDetail) -> str:
    return f"{custom_prompt}\n\nVulnerability Data:\n{build_classification_prompt(vuln)}"


def classify_with_custom_prompt(
    vuln: VulnerabilityDetail,
    backend: StructuredClassifier,
    custom_prompt: str,
) -> DebugResult:
    """Send ``custom_prompt`` plus the vulnerability data as a plain chat message."""
    start = time.monotonic()
    response = backend.chat([{"role": "user", "content": build_debug_prompt(custom_prompt, vuln)}])
    elapsed = time.monotonic() - start

    return DebugResult(
        processing_time=elapsed,
        input_tokens=response.input_tokens,
        output_tokens=response.output_tokens,
        total_tokens=response.total_tokens,
        raw_response=response.content,
    )
