"""Data models for process_vulnerabilities pipeline stage."""

from dataclasses import dataclass

from classify_vulnerabilities.models import VulnerabilityClassification


@dataclass
class RunMetrics:
    """Counters for one run, owned by the driving loop."""
    attempted: int = 0
    processed: int = 0
    failed: int = 0
    fetch_failed: int = 0
    total_processing_time: float = 0.0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0

    def record(self, classification: VulnerabilityClassification) -> None:
        """Count a classification that has been durably stored."""
        self.processed += 1
        self.total_processing_time += classification.processing_time
        self.total_input_tokens += classification.input_tokens
        self.total_output_tokens += classification.output_tokens
        self.total_tokens += classification.total_tokens

    @property
    def average_processing_time(self) -> float:
        return self.total_processing_time / self.processed if self.processed else 0.0

    @property
    def average_tokens(self) -> int:
        return self.total_tokens // self.processed if self.processed else 0
