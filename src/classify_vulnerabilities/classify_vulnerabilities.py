"""Core vulnerability classification logic."""

import logging
import time
from datetime import datetime, timezone

from classify_vulnerabilities.instructions import CLASSIFY_VULNERABILITY_INSTRUCTIONS
from classify_vulnerabilities.llm import StructuredClassifier
from classify_vulnerabilities.models import VulnerabilityClassification
from classify_vulnerabilities.validation import validate_classification
from fetch_feed.models import VulnerabilityDetail

logger = logging.getLogger(__name__)

OSV_VULNERABILITY_URL = "https://osv.dev/vulnerability/{vuln_id}"

# Bounds prompt size; further references are dropped.
MAX_REFERENCES = 3


def build_classification_prompt(vuln: VulnerabilityDetail) -> str:
    """Format a vulnerability into the user prompt sent to the model."""
    lines = [
        "Please classify this vulnerability using the 6-dimensional system:",
        "",
        f"Vulnerability ID: {vuln.id}",
        f"Summary: {vuln.summary}",
    ]

    if vuln.details:
        lines.append(f"Details: {vuln.details}")

    if vuln.aliases:
        lines.append(f"Aliases: {', '.join(vuln.aliases)}")

    if vuln.affected:
        lines.append("Affected packages:")
        for affected in vuln.affected:
            lines.append(f"- {affected.name} ({affected.ecosystem})")

    if vuln.references:
        lines.append("References:")
        for ref in vuln.references[:MAX_REFERENCES]:
            lines.append(f"- {ref.type}: {ref.url}")

    if vuln.severity:
        lines.append("Severity scores:")
        for severity in vuln.severity:
            lines.append(f"- {severity.type}: {severity.score}")

    return "\n".join(lines) + "\n"


def build_messages(vuln: VulnerabilityDetail) -> list[dict[str, str]]:
    """Build the system and user messages for a vulnerability."""
    return [
        {"role": "system", "content": CLASSIFY_VULNERABILITY_INSTRUCTIONS},
        {"role": "user", "content": build_classification_prompt(vuln)},
    ]


def classify_vulnerability(
    vuln: VulnerabilityDetail,
    backend: StructuredClassifier,
) -> VulnerabilityClassification:
    """
    Classify a vulnerability with a structured-output LLM backend.

    Args:
        vuln: Fully fetched vulnerability record
        backend: Structured classification backend

    Returns:
        Validated classification with provenance and usage metrics

    Raises:
        ModelError: If the backend call fails
        DecodeError: If the reply cannot be parsed as JSON
        ValidationError: If the reply violates the taxonomy
    """
    start = time.monotonic()
    response = backend.classify(build_messages(vuln))
    fields = validate_classification(response.result)
    elapsed = time.monotonic() - start
    logger.debug("Classified %s in %.2fs", vuln.id, elapsed)

    return VulnerabilityClassification(
        vulnerability_id=vuln.id,
        verifiability=fields["verifiability"],
        exploitability_context=fields["exploitability_context"],
        attack_vector=fields["attack_vector"],
        impact_scope=fields["impact_scope"],
        remediation_complexity=fields["remediation_complexity"],
        temporal_classification=fields["temporal_classification"],
        reasoning=fields["reasoning"],
        processed_at=datetime.now(timezone.utc).isoformat(),
        osv_url=OSV_VULNERABILITY_URL.format(vuln_id=vuln.id),
        osv_published=vuln.published,
        osv_modified=vuln.modified,
        osv_withdrawn=vuln.withdrawn,
        processing_time=elapsed,
        input_tokens=response.input_tokens,
        output_tokens=response.output_tokens,
        total_tokens=response.total_tokens,
    )
