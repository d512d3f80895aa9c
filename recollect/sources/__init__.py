from recollect.sources.base import SourceAdapter, SourceQuery
from recollect.sources.memory import MemorySource

__all__ = ["SourceAdapter", "SourceQuery", "MemorySource", "VectorContentSource"]


def __getattr__(name):
    if name == "VectorContentSource":
        from recollect.sources.content import VectorContentSource
        return VectorContentSource
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
