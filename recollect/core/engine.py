"""
Recollect Context Engine
------------------------
Public boundary of the library. Composes:

- Embedder (Ollama or OpenAI over httpx, optionally behind an LRU/TTL cache)
- Qdrant content index (past messages and files)
- SQLite memory store (user-declared facts and preferences)
- Read-only connectors (email, calendar, drive)
- Retrieval coordinator, context formatter and memory manager

Usage:
    engine = ContextEngine.from_config(EngineConfig.from_env())

    result = await engine.retrieve_context(
        ContextRequest(owner_id="u1", query_text="What are my lunch plans?")
    )
    print(result.formatted_text)

    await engine.store_memory("u1", "callsign", "Falcon")

    await engine.close()
"""

import inspect
import logging
from typing import List, Optional, Sequence, Union

import httpx

from recollect.core.config import EngineConfig
from recollect.core.types import (
    ContextRequest,
    Memory,
    MemoryCategory,
    RememberCommand,
    RetrievalResult,
)
from recollect.embedding import CachedEmbedder, Embedder, OllamaEmbedder, OpenAIEmbedder
from recollect.memory import MemoryStoreManager, parse_remember_command
from recollect.observability import RetrievalTracer
from recollect.retrieval import ContextFormatter, RetrievalCoordinator
from recollect.sources.base import SourceAdapter
from recollect.sources.connectors import ConnectorSource, build_connectors
from recollect.sources.memory import MemorySource
from recollect.store.memory_store import SQLiteMemoryStore

logger = logging.getLogger("Recollect")


def build_embedder(config: EngineConfig, http_client: Optional[httpx.AsyncClient] = None) -> Embedder:
    """Construct the configured embedding provider, cached when enabled."""
    emb = config.embedding
    common = {
        "timeout": emb.timeout_seconds,
        "price_per_1k_tokens": emb.price_per_1k_tokens,
        "http_client": http_client,
    }
    embedder: Embedder
    if emb.provider == "openai":
        if not emb.openai_api_key:
            logger.warning("OpenAI embedding provider selected without RECOLLECT_OPENAI_API_KEY")
        embedder = OpenAIEmbedder(
            api_key=emb.openai_api_key or "",
            base_url=emb.openai_url,
            model=emb.model,
            dimensions=emb.dimensions,
            **common,
        )
    else:
        embedder = OllamaEmbedder(base_url=emb.ollama_url, model=emb.model, **common)

    if emb.cache_enabled:
        embedder = CachedEmbedder(embedder, max_size=emb.cache_max_size, ttl_seconds=emb.cache_ttl_seconds)
    logger.info("Embedding provider: %s/%s", embedder.name, emb.model)
    return embedder


class ContextEngine:
    """Retrieval and memory operations over one set of stores and connectors."""

    def __init__(
        self,
        embedder: Embedder,
        memory_store: SQLiteMemoryStore,
        sources: Sequence[SourceAdapter] = (),
        connectors: Sequence[ConnectorSource] = (),
        formatter: Optional[ContextFormatter] = None,
        connector_budget: int = 5,
        tracer: Optional[RetrievalTracer] = None,
        content_index=None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._tracer = tracer or RetrievalTracer(enabled=False)
        self.embedder = embedder
        self.memory_store = memory_store
        self.content_index = content_index
        self.coordinator = RetrievalCoordinator(
            embedder,
            sources=sources,
            connectors=connectors,
            formatter=formatter,
            connector_budget=connector_budget,
            tracer=self._tracer,
        )
        self.memories = MemoryStoreManager(memory_store, embedder, tracer=self._tracer)
        self._http_client = http_client
        self._closed = False

    @classmethod
    def from_config(cls, config: Optional[EngineConfig] = None) -> "ContextEngine":
        """Wire every backend from configuration."""
        config = config or EngineConfig.from_env()
        config.ensure_directories()
        tracer = RetrievalTracer.from_config(config.telemetry)

        # One pooled client for the embedder and all connectors.
        http_client = httpx.AsyncClient(headers={"Accept": "application/json"})
        embedder = build_embedder(config, http_client=http_client)

        from recollect.sources.content import VectorContentSource
        from recollect.store.content_index import QdrantContentIndex

        ci = config.content_index
        index_kwargs = {"collection_name": ci.collection, "embedding_dims": ci.dimensions}
        if ci.url:
            content_index = QdrantContentIndex.from_url(ci.url, **index_kwargs)
        else:
            content_index = QdrantContentIndex.from_path(ci.path, **index_kwargs)

        memory_store = SQLiteMemoryStore(config.memory_store.path)

        rc = config.retrieval
        sources: List[SourceAdapter] = [
            VectorContentSource(
                content_index,
                threshold=rc.content_threshold,
                timeout=rc.store_timeout_seconds,
                tracer=tracer,
            ),
            MemorySource(
                memory_store,
                threshold=rc.memory_threshold,
                limit=rc.memory_limit,
                timeout=rc.store_timeout_seconds,
                tracer=tracer,
            ),
        ]
        connectors = build_connectors(
            config.connectors,
            timeout=rc.connector_timeout_seconds,
            http_client=http_client,
            tracer=tracer,
        )
        formatter = ContextFormatter(
            connector_sections=[(c.kind, c.section_title) for c in connectors],
            message_max_chars=config.formatter.message_max_chars,
            chars_per_token=config.formatter.chars_per_token,
        )

        logger.info(
            "Recollect engine ready: %d sources, connectors=%s",
            len(sources),
            [c.kind for c in connectors] or "none",
        )
        return cls(
            embedder,
            memory_store,
            sources=sources,
            connectors=connectors,
            formatter=formatter,
            connector_budget=config.connectors.result_budget,
            tracer=tracer,
            content_index=content_index,
            http_client=http_client,
        )

    # ==========================================
    # Boundary operations
    # ==========================================

    async def retrieve_context(self, request: ContextRequest) -> RetrievalResult:
        return await self.coordinator.retrieve_context(request)

    async def store_memory(
        self,
        owner_id: str,
        key: str,
        value: str,
        category: Union[MemoryCategory, str, None] = None,
    ) -> Memory:
        return await self.memories.store(owner_id, key, value, category)

    async def get_memories(self, owner_id: str) -> List[Memory]:
        return await self.memories.list(owner_id)

    async def delete_memory(self, owner_id: str, memory_id: str) -> None:
        await self.memories.delete(owner_id, memory_id)

    @staticmethod
    def parse_remember_command(text: str) -> Optional[RememberCommand]:
        return parse_remember_command(text)

    async def close(self) -> None:
        """Release HTTP clients and stores. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        closers = [(c.name, c.close) for c in self.coordinator.connectors]
        closers.append((self.embedder.name, self.embedder.close))
        if self._http_client is not None:
            closers.append(("http_client", self._http_client.aclose))
        closers.append(("memory_store", self.memory_store.close))
        if self.content_index is not None:
            closers.append(("content_index", self.content_index.close))

        for name, close in closers:
            try:
                result = close()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("Failed to close %s: %s", name, e)
        logger.info("Recollect engine closed")
