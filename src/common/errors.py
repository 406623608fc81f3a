"""Error taxonomy shared by the pipeline stages.

Fatal versus per-record handling is decided by the driving loop, not here:

- ``SkipRow`` never leaves the index reader.
- ``DownloadError`` on a single record fetch, and ``ModelError``,
  ``DecodeError`` or ``ValidationError`` during classification, skip that
  record only.
- ``WriteError`` aborts the run.
"""

from __future__ import annotations

from typing import Sequence


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class TransportError(PipelineError):
    """Network or HTTP failure reaching the feed, the model or the store."""


class DownloadError(TransportError):
    """The feed index or a full record could not be downloaded."""


class ModelError(TransportError):
    """The generative model backend failed or returned no usable reply."""


class DecodeError(PipelineError):
    """A payload was malformed and could not be parsed at all."""


class SkipRow(PipelineError):
    """A single index row is malformed and must be dropped."""


class ValidationError(PipelineError):
    """Model output parsed but violates the classification taxonomy."""

    def __init__(self, message: str, field: str, allowed: Sequence[str] = ()):
        super().__init__(message)
        self.field = field
        self.allowed = tuple(allowed)


class StoreError(PipelineError):
    """The checkpoint store failed."""


class ReadError(StoreError):
    """The checkpoint store could not be read."""


class WriteError(StoreError):
    """The checkpoint store rejected a write."""


class ProcessError(PipelineError):
    """The per-record callback failed; the run cannot continue safely."""

    def __init__(self, record_id: str, cause: BaseException):
        super().__init__(f"processing vulnerability {record_id}: {cause}")
        self.record_id = record_id
        self.cause = cause


class RunCancelled(PipelineError):
    """The run was cancelled between batches."""

    def __init__(self, cause: str = "cancelled"):
        super().__init__(cause)
        self.cause = cause
