"""
Recollect Embedding Cache
-------------------------
LRU + TTL cache in front of any Embedder. Keys are SHA-256 digests of the
input text; cache hits cost nothing.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections import OrderedDict
from typing import Any, Dict, List, Tuple

from recollect.core.types import EmbeddingResult
from recollect.embedding.base import Embedder

logger = logging.getLogger("Recollect.Embedding")

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 24 * 60 * 60


def _cache_key(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class CachedEmbedder(Embedder):
    """Wraps an embedder with a bounded, expiring LRU cache."""

    def __init__(
        self,
        inner: Embedder,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ):
        self.inner = inner
        self.name = f"cached:{inner.name}"
        self.max_size = max(1, int(max_size))
        self.ttl_seconds = ttl_seconds
        self._entries: "OrderedDict[str, Tuple[List[float], float]]" = OrderedDict()
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    async def embed(self, text: str) -> EmbeddingResult:
        key = _cache_key(text)
        async with self._lock:
            cached = self._lookup(key)
        if cached is not None:
            return EmbeddingResult(vector=cached, cost_units=0.0)

        # EmbeddingFailure propagates; failures are never cached.
        result = await self.inner.embed(text)

        async with self._lock:
            self._store(key, result.vector)
            self._misses += 1
        return result

    def _lookup(self, key: str):
        entry = self._entries.get(key)
        if entry is None:
            return None
        vector, stored_at = entry
        if time.monotonic() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        self._hits += 1
        return list(vector)

    def _store(self, key: str, vector: List[float]) -> None:
        self._entries[key] = (list(vector), time.monotonic())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            self._evictions += 1

    def stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "total_requests": total,
            "hit_rate": (self._hits / total) if total else 0.0,
            "size": len(self._entries),
            "evictions": self._evictions,
        }

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("Embedding cache cleared")

    async def close(self) -> None:
        await self.inner.close()
