# Lazy imports to avoid pulling httpx/qdrant on simple type imports
from recollect.core.errors import (
    EmbeddingFailure,
    MemoryReadFailure,
    MemoryWriteFailure,
    RecollectError,
    SourceNotProvisioned,
    SourceUnavailable,
)
from recollect.core.types import ContextRequest, Memory, RetrievalResult, RetrievedItem

__all__ = [
    "ContextEngine",
    "ContextRequest",
    "Memory",
    "RetrievalResult",
    "RetrievedItem",
    "RecollectError",
    "EmbeddingFailure",
    "SourceUnavailable",
    "SourceNotProvisioned",
    "MemoryWriteFailure",
    "MemoryReadFailure",
]


def __getattr__(name):
    if name == "ContextEngine":
        from recollect.core.engine import ContextEngine
        return ContextEngine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
