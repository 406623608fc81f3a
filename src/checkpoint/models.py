"""Data models for the checkpoint store."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ProcessingState:
    """Watermark: the most recent index timestamp confirmed stored."""
    last_processed_timestamp: str
    updated_at: datetime
