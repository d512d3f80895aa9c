# Lazy import: QdrantContentIndex needs qdrant_client
from recollect.store.memory_store import SQLiteMemoryStore

__all__ = ["SQLiteMemoryStore", "QdrantContentIndex"]


def __getattr__(name):
    if name == "QdrantContentIndex":
        from recollect.store.content_index import QdrantContentIndex
        return QdrantContentIndex
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
