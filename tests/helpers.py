"""Shared fakes for the test-suite."""

import asyncio
from typing import List, Optional

from recollect.core.errors import EmbeddingFailure
from recollect.core.types import EmbeddingResult, ItemMetadata, RetrievedItem
from recollect.embedding.base import Embedder
from recollect.sources.base import SourceAdapter, SourceQuery


def make_item(
    item_type: str,
    item_id: str,
    similarity: float,
    content: str = "",
    summary: Optional[str] = None,
    **metadata,
) -> RetrievedItem:
    return RetrievedItem(
        type=item_type,
        id=item_id,
        content=content or f"{item_type} {item_id}",
        summary=summary,
        similarity=similarity,
        metadata=ItemMetadata(**metadata),
    )


class FakeEmbedder(Embedder):
    name = "fake"

    def __init__(self, vector=None, cost_units: float = 0.001, fail: bool = False):
        self.vector = vector or [1.0, 0.0, 0.0]
        self.cost_units = cost_units
        self.fail = fail
        self.calls: List[str] = []

    async def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingFailure("provider down")
        return EmbeddingResult(vector=list(self.vector), cost_units=self.cost_units)


class StaticSource(SourceAdapter):
    """Returns canned items, optionally after a delay or with a failure."""

    def __init__(
        self,
        name: str,
        items: Optional[List[RetrievedItem]] = None,
        delay: float = 0.0,
        error: Optional[BaseException] = None,
        timeout: float = 10.0,
    ):
        super().__init__(timeout=timeout)
        self.name = name
        self.items = items or []
        self.delay = delay
        self.error = error
        self.queries: List[SourceQuery] = []

    async def _search(self, query: SourceQuery) -> List[RetrievedItem]:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.items)
