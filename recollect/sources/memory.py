"""
Memory source: user-declared facts and preferences.
"""

import asyncio
from datetime import datetime, timezone
from typing import List

from recollect.core.types import ItemMetadata, ItemType, Memory, RetrievedItem
from recollect.sources.base import SourceAdapter, SourceQuery, clamp_similarity
from recollect.store.memory_store import SQLiteMemoryStore

MEMORY_THRESHOLD = 0.6
MEMORY_LIMIT = 5


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def memory_to_item(memory: Memory, score: float) -> RetrievedItem:
    return RetrievedItem(
        type=ItemType.MEMORY.value,
        id=memory.id,
        content=f"{memory.key}: {memory.value}",
        similarity=clamp_similarity(score),
        metadata=ItemMetadata(
            created_at=_iso(memory.created_at),
            provenance="memory",
        ),
    )


class MemorySource(SourceAdapter):
    """Searches the owner's memories; scope never narrows this source."""

    name = "memory"

    def __init__(
        self,
        store: SQLiteMemoryStore,
        threshold: float = MEMORY_THRESHOLD,
        limit: int = MEMORY_LIMIT,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.store = store
        self.threshold = threshold
        self.limit = limit

    async def _search(self, query: SourceQuery) -> List[RetrievedItem]:
        hits = await asyncio.to_thread(
            self.store.search,
            query.vector,
            query.owner_id,
            threshold=self.threshold,
            limit=min(self.limit, query.limit),
        )
        return [memory_to_item(memory, score) for memory, score in hits]
