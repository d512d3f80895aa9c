"""
Vector content source: past conversation messages and file content.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from recollect.core.types import ItemMetadata, ItemType, RetrievedItem
from recollect.sources.base import SourceAdapter, SourceQuery, clamp_similarity
from recollect.store.content_index import QdrantContentIndex

logger = logging.getLogger("Recollect.Sources")

CONTENT_THRESHOLD = 0.65
_CONTENT_TYPES = {ItemType.MESSAGE.value, ItemType.FILE.value}


class VectorContentSource(SourceAdapter):
    """Searches indexed messages and files for the owner."""

    name = "content"

    def __init__(
        self,
        index: QdrantContentIndex,
        threshold: float = CONTENT_THRESHOLD,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.index = index
        self.threshold = threshold

    async def _search(self, query: SourceQuery) -> List[RetrievedItem]:
        hits = await asyncio.to_thread(
            self.index.search,
            query.vector,
            query.owner_id,
            scope_id=query.scope_id,
            exclude_container_id=query.exclude_container_id,
            threshold=self.threshold,
            limit=query.limit,
        )
        items = []
        for payload, score in hits:
            # The index filters too; this keeps the guarantee if it does not.
            if query.exclude_container_id and payload.get("container_id") == query.exclude_container_id:
                continue
            item = self._to_item(payload, score)
            if item is not None:
                items.append(item)
        return items

    @staticmethod
    def _to_item(payload: Dict[str, Any], score: float) -> Optional[RetrievedItem]:
        item_type = payload.get("item_type") or ItemType.MESSAGE.value
        if item_type not in _CONTENT_TYPES:
            logger.debug("Skipping content item with unknown type '%s'", item_type)
            return None
        return RetrievedItem(
            type=item_type,
            id=str(payload["item_id"]),
            content=payload.get("content") or "",
            summary=payload.get("summary"),
            similarity=clamp_similarity(score),
            metadata=ItemMetadata(
                container_id=payload.get("container_id"),
                container_title=payload.get("container_title"),
                scope_id=payload.get("scope_id"),
                scope_name=payload.get("scope_name"),
                created_at=payload.get("created_at"),
                provenance="local",
            ),
        )
