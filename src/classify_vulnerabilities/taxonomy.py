"""Closed vocabularies of the six classification dimensions."""

from typing import Any

VOCABULARIES: dict[str, tuple[str, ...]] = {
    "verifiability": (
        "verifiable",
        "non-verifiable",
        "partially-verifiable",
    ),
    "exploitability_context": (
        "direct-dependency",
        "transitive-dependency",
        "development-only",
        "runtime-critical",
    ),
    "attack_vector": (
        "user-input-required",
        "network-accessible",
        "local-only",
        "configuration-dependent",
    ),
    "impact_scope": (
        "data-confidentiality",
        "data-integrity",
        "system-availability",
        "code-execution",
        "privilege-escalation",
    ),
    "remediation_complexity": (
        "simple-update",
        "breaking-change",
        "no-fix-available",
        "workaround-available",
        "architecture-change",
    ),
    "temporal_classification": (
        "zero-day",
        "active-exploitation",
        "stable-mature",
        "legacy",
    ),
}

CLASSIFICATION_FIELDS = tuple(VOCABULARIES)


def classification_schema() -> dict[str, Any]:
    """JSON schema for a model reply, strict-mode compatible."""
    properties: dict[str, Any] = {
        name: {"type": "string", "enum": list(values)}
        for name, values in VOCABULARIES.items()
    }
    properties["reasoning"] = {
        "type": "string",
        "description": "Brief explanation of the classification decisions",
    }
    return {
        "type": "object",
        "properties": properties,
        "required": [*CLASSIFICATION_FIELDS, "reasoning"],
        "additionalProperties": False,
    }
