"""
Recollect Retrieval Coordinator
-------------------------------
One embedding call, then a concurrent fan-out to every enabled source.

Pipeline:
1. Embed the query text (failure is fatal: EmbeddingFailure)
2. Search vector content, memories and connectors concurrently, each under
   its own timeout; a failed or slow source contributes an empty list
3. Merge, rank by similarity with source-priority tie-breaks, truncate
4. Render the context block and estimate its token count
"""

import asyncio
import logging
import math
import time
from typing import List, Optional, Sequence, Tuple

from recollect.core.errors import EmbeddingFailure
from recollect.core.types import ContextRequest, RetrievalResult, RetrievedItem
from recollect.embedding.base import Embedder
from recollect.observability import RetrievalTracer
from recollect.retrieval.formatter import ContextFormatter
from recollect.retrieval.ranking import merge_and_rank
from recollect.sources.base import SourceAdapter, SourceQuery
from recollect.sources.connectors.base import ConnectorSource

logger = logging.getLogger("Recollect.Retrieval")

DEFAULT_CONNECTOR_BUDGET = 5


class RetrievalCoordinator:
    """Fans a query out to all sources and assembles the ranked result."""

    def __init__(
        self,
        embedder: Embedder,
        sources: Sequence[SourceAdapter] = (),
        connectors: Sequence[ConnectorSource] = (),
        formatter: Optional[ContextFormatter] = None,
        connector_budget: int = DEFAULT_CONNECTOR_BUDGET,
        tracer: Optional[RetrievalTracer] = None,
    ):
        self.embedder = embedder
        self.sources = list(sources)
        self.connectors = list(connectors)
        self.formatter = formatter or ContextFormatter(
            connector_sections=[(c.kind, c.section_title) for c in self.connectors]
        )
        self.connector_budget = max(1, connector_budget)
        self._tracer = tracer or RetrievalTracer(enabled=False)

    async def retrieve_context(self, request: ContextRequest) -> RetrievalResult:
        """
        Retrieve, rank and format context for one request.

        Raises:
            EmbeddingFailure: the query could not be embedded. No other
                failure reaches the caller; degraded sources only show in logs.
        """
        if request.max_results <= 0:
            return RetrievalResult(query=request.query_text)

        t0 = time.monotonic()
        with self._tracer.span(
            "recollect.retrieve_context",
            {
                "recollect.owner_id": request.owner_id,
                "recollect.max_results": request.max_results,
                "recollect.include_connectors": request.include_connectors,
                "recollect.query": self._tracer.query_attribute(request.query_text),
            },
        ):
            embedding = await self._embed_query(request.query_text)

            base_query = SourceQuery(
                vector=embedding.vector,
                query_text=request.query_text,
                owner_id=request.owner_id,
                limit=request.max_results,
                scope_id=request.scope_id,
                exclude_container_id=request.exclude_container_id,
                credentials=request.connector_credentials,
            )
            plan = self._plan(request, base_query)
            per_source = await self._fan_out(plan)

            items = merge_and_rank(per_source, request.max_results)
            formatted = self.formatter.format(items)
            self._tracer.record(items=len(items), sources=len(plan), estimated_tokens=formatted.estimated_tokens)

        logger.info(
            "Retrieved %d items from %d sources for owner=%s in %dms",
            len(items),
            len(plan),
            request.owner_id,
            int((time.monotonic() - t0) * 1000),
        )
        return RetrievalResult(
            query=request.query_text,
            items=items,
            formatted_text=formatted.text,
            estimated_tokens=formatted.estimated_tokens,
            cost_units=embedding.cost_units,
        )

    async def _embed_query(self, text: str):
        try:
            return await self.embedder.embed(text)
        except EmbeddingFailure as e:
            logger.error("Query embedding failed: %s", e)
            raise
        except Exception as e:
            logger.error("Query embedding failed: %s", e)
            raise EmbeddingFailure(f"Query embedding failed: {e}") from e

    def _plan(
        self,
        request: ContextRequest,
        base_query: SourceQuery,
    ) -> List[Tuple[SourceAdapter, SourceQuery]]:
        """Pick the sources that run for this request and their per-source query."""
        plan: List[Tuple[SourceAdapter, SourceQuery]] = [
            (source, base_query) for source in self.sources if source.accepts(base_query)
        ]
        if request.include_connectors:
            active = [c for c in self.connectors if c.accepts(base_query)]
            if active:
                per_connector = math.ceil(self.connector_budget / len(active))
                connector_query = base_query.model_copy(update={"limit": per_connector})
                plan.extend((connector, connector_query) for connector in active)
        return plan

    async def _fan_out(
        self,
        plan: List[Tuple[SourceAdapter, SourceQuery]],
    ) -> List[List[RetrievedItem]]:
        """Run every planned search concurrently; results stay in plan order."""
        if not plan:
            return []
        results = await asyncio.gather(
            *(source.search(query) for source, query in plan),
            return_exceptions=True,
        )
        per_source: List[List[RetrievedItem]] = []
        for (source, _), result in zip(plan, results):
            if isinstance(result, BaseException):
                logger.warning("source=%s raised past its boundary: %s", source.name, result)
                per_source.append([])
            else:
                per_source.append(list(result))
        return per_source
