"""
Recollect exceptions.
"""

from __future__ import annotations

from typing import Optional


class RecollectError(RuntimeError):
    """Base class for engine errors."""


class EmbeddingFailure(RecollectError):
    """Raised when the embedding provider cannot produce a vector.

    Fatal for retrieval: without a query vector no source can be ranked.
    """


class SourceUnavailable(RecollectError):
    """Raised inside a source adapter when its backend fails unexpectedly."""

    def __init__(self, source: str, detail: str, *, cause: Optional[BaseException] = None) -> None:
        self.source = source
        self.detail = detail
        self.cause = cause
        super().__init__(f"{source}: {detail}")


class SourceNotProvisioned(SourceUnavailable):
    """Raised when a backend has not been set up yet (expected on first run)."""


class MemoryWriteFailure(RecollectError):
    """Raised when a memory cannot be persisted."""


class MemoryReadFailure(RecollectError):
    """Raised when memories cannot be listed or deleted."""
