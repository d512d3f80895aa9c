"""
Recollect Memory Store Manager
------------------------------
Store, list and delete user-declared memories.

Writes are not best-effort: every store failure, including the embedding
step, surfaces as MemoryWriteFailure. Deletes are idempotent; a missing or
foreign-owned id is a silent no-op.
"""

import asyncio
import logging
from typing import List, Optional, Union

from recollect.core.errors import MemoryWriteFailure
from recollect.core.types import Memory, MemoryCategory
from recollect.embedding.base import Embedder
from recollect.observability import RetrievalTracer
from recollect.store.memory_store import SQLiteMemoryStore

logger = logging.getLogger("Recollect.Memory")


def _coerce_category(category: Union[MemoryCategory, str, None]) -> MemoryCategory:
    if category is None:
        return MemoryCategory.FACT
    if isinstance(category, MemoryCategory):
        return category
    try:
        return MemoryCategory(str(category).strip().lower())
    except ValueError as exc:
        raise MemoryWriteFailure(f"Unknown memory category '{category}'") from exc


class MemoryStoreManager:
    """CRUD surface for an owner's memories."""

    def __init__(
        self,
        store: SQLiteMemoryStore,
        embedder: Embedder,
        tracer: Optional[RetrievalTracer] = None,
    ):
        self.memory_store = store
        self.embedder = embedder
        self._tracer = tracer or RetrievalTracer(enabled=False)

    async def store(
        self,
        owner_id: str,
        key: str,
        value: str,
        category: Union[MemoryCategory, str, None] = None,
    ) -> Memory:
        """Embed ``"<key>: <value>"`` and upsert it under (owner_id, key)."""
        key = (key or "").strip()
        value = (value or "").strip()
        if not key or not value:
            raise MemoryWriteFailure("Memory key and value must be non-empty")
        resolved = _coerce_category(category)

        with self._tracer.span(
            "recollect.memory.store",
            {"recollect.owner_id": owner_id, "recollect.category": resolved.value},
        ):
            try:
                embedding = await self.embedder.embed(f"{key}: {value}")
            except Exception as e:
                logger.error("Failed to embed memory '%s' for owner=%s: %s", key, owner_id, e)
                raise MemoryWriteFailure(f"Failed to store memory '{key}': {e}") from e

            try:
                memory = await asyncio.to_thread(
                    self.memory_store.upsert,
                    owner_id=owner_id,
                    key=key,
                    value=value,
                    category=resolved,
                    embedding=embedding.vector,
                )
            except MemoryWriteFailure as e:
                logger.error("Failed to persist memory '%s' for owner=%s: %s", key, owner_id, e)
                raise
            except Exception as e:
                logger.error("Failed to persist memory '%s' for owner=%s: %s", key, owner_id, e)
                raise MemoryWriteFailure(f"Failed to store memory '{key}': {e}") from e

        logger.info("Stored memory key='%s' owner=%s category=%s", key, owner_id, resolved.value)
        return memory

    async def list(self, owner_id: str) -> List[Memory]:
        """All of an owner's memories, most recently updated first."""
        return await asyncio.to_thread(self.memory_store.list, owner_id)

    async def delete(self, owner_id: str, memory_id: str) -> bool:
        """Delete if owned by owner_id. Returns False (no error) when nothing matched."""
        deleted = await asyncio.to_thread(self.memory_store.delete, owner_id, memory_id)
        if deleted:
            logger.info("Deleted memory id=%s owner=%s", memory_id, owner_id)
        else:
            logger.debug("Delete of memory id=%s for owner=%s matched nothing", memory_id, owner_id)
        return deleted
