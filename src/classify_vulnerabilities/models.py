"""Data models for classify_vulnerabilities pipeline stage."""

from dataclasses import dataclass


@dataclass(frozen=True)
class VulnerabilityClassification:
    """Validated six-dimensional classification of one vulnerability."""
    vulnerability_id: str
    verifiability: str
    exploitability_context: str
    attack_vector: str
    impact_scope: str
    remediation_complexity: str
    temporal_classification: str
    reasoning: str
    processed_at: str

    # Provenance
    osv_url: str
    osv_published: str
    osv_modified: str
    osv_withdrawn: str

    # Usage
    processing_time: float
    input_tokens: int
    output_tokens: int
    total_tokens: int
