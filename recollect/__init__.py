"""
Recollect: Context Retrieval for Conversational Assistants
"""

from recollect.core.config import EngineConfig
from recollect.core.errors import (
    EmbeddingFailure,
    MemoryReadFailure,
    MemoryWriteFailure,
    RecollectError,
    SourceNotProvisioned,
    SourceUnavailable,
)
from recollect.core.types import (
    ConnectorCredentials,
    ContextRequest,
    ItemMetadata,
    Memory,
    MemoryCategory,
    RememberCommand,
    RetrievalResult,
    RetrievedItem,
)
from recollect.version import __version__

__all__ = [
    "__version__",
    "ContextEngine",
    "EngineConfig",
    "ContextRequest",
    "ConnectorCredentials",
    "RetrievalResult",
    "RetrievedItem",
    "ItemMetadata",
    "Memory",
    "MemoryCategory",
    "RememberCommand",
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
