"""
Recollect Source Adapter Base
=============================
Abstract base class for every retrieval source (vector content, memories,
external connectors).

Each adapter provides:
  - async search(query) -> list[RetrievedItem]

``search`` is the adapter's boundary and never raises:
  1. The subclass ``_search`` runs under the adapter's own timeout
  2. SourceNotProvisioned degrades to [] with an INFO record
  3. Timeouts and any other failure degrade to [] with a WARNING record
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from recollect.core.errors import SourceNotProvisioned
from recollect.core.types import ConnectorCredentials, RetrievedItem
from recollect.observability import RetrievalTracer

logger = logging.getLogger("Recollect.Sources")

DEFAULT_TIMEOUT = 10.0


class SourceQuery(BaseModel):
    """Everything a source needs for one search call."""

    model_config = ConfigDict(frozen=True)

    vector: List[float]
    query_text: str
    owner_id: str
    limit: int
    scope_id: Optional[str] = None
    exclude_container_id: Optional[str] = None
    credentials: Dict[str, ConnectorCredentials] = Field(default_factory=dict)


def clamp_similarity(score: float) -> float:
    return max(0.0, min(1.0, float(score)))


class SourceAdapter(ABC):
    """
    Abstract base class for retrieval sources.

    Subclasses implement ``_search``; ``search`` adds the time box and
    failure isolation.
    """

    #: Source identity used in logs and spans
    name: str = "source"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, tracer: Optional[RetrievalTracer] = None) -> None:
        self.timeout = timeout
        self._tracer = tracer or RetrievalTracer(enabled=False)

    @abstractmethod
    async def _search(self, query: SourceQuery) -> List[RetrievedItem]:
        """Query the backend. May raise; ``search`` contains the fallout."""

    def accepts(self, query: SourceQuery) -> bool:
        """Whether this source can run for the given query at all."""
        return True

    async def search(self, query: SourceQuery) -> List[RetrievedItem]:
        """
        Run this source for one query.

        Returns an empty list on timeout, missing provisioning, or failure.
        Never raises.
        """
        t_start = time.monotonic()
        with self._tracer.span(
            f"recollect.source.{self.name}",
            {"recollect.source": self.name, "recollect.limit": query.limit},
        ):
            try:
                items = await asyncio.wait_for(self._search(query), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning("source=%s timed out after %.1fs", self.name, self.timeout)
                return []
            except SourceNotProvisioned as e:
                logger.info("source=%s not provisioned: %s", self.name, e.detail)
                return []
            except Exception as e:
                logger.warning("source=%s search failed: %s", self.name, e)
                return []

        logger.debug(
            "source=%s returned %d items in %dms",
            self.name,
            len(items),
            int((time.monotonic() - t_start) * 1000),
        )
        return list(items)

    async def close(self) -> None:
        """Release adapter resources."""
