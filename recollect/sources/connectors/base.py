"""
Recollect Connector Base
========================
Lexical search adapters for external read-only services.

A connector sends the raw query text to its service, maps native results to
RetrievedItem, and stamps every item with the fixed pseudo-similarity of its
kind so connector hits merge on the same scale as vector hits. Credentials are
consumed as-is; refreshing them is the caller's job.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from recollect.core.errors import SourceUnavailable
from recollect.core.types import (
    ConnectorCredentials,
    ItemMetadata,
    RetrievedItem,
    connector_type,
)
from recollect.sources.base import SourceAdapter, SourceQuery, clamp_similarity

logger = logging.getLogger("Recollect.Connectors")

DEFAULT_CONNECTOR_TIMEOUT = 5.0


class ConnectorSource(SourceAdapter):
    """
    Abstract base for connector adapters.

    Subclasses set ``kind``, ``default_score``, ``credential_group`` and
    ``section_title`` and implement ``_query``.
    """

    #: Connector kind; items are typed ``connector:<kind>``
    kind: str = "connector"

    #: Pseudo-similarity assigned to every hit
    default_score: float = 0.75

    #: Key into ContextRequest.connector_credentials
    credential_group: str = "default"

    #: Heading used by the formatter
    section_title: str = "Relevant External Results"

    def __init__(
        self,
        *,
        score: Optional[float] = None,
        timeout: float = DEFAULT_CONNECTOR_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
        **kwargs,
    ):
        super().__init__(timeout=timeout, **kwargs)
        self.name = f"connector:{self.kind}"
        self.score = clamp_similarity(self.default_score if score is None else score)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(headers={"Accept": "application/json"})

    def accepts(self, query: SourceQuery) -> bool:
        creds = query.credentials.get(self.credential_group)
        return bool(creds and creds.access_token)

    async def _search(self, query: SourceQuery) -> List[RetrievedItem]:
        creds = query.credentials.get(self.credential_group)
        if not creds or not creds.access_token:
            return []
        return await self._query(query.query_text, creds, query.limit)

    @abstractmethod
    async def _query(
        self,
        query_text: str,
        credentials: ConnectorCredentials,
        limit: int,
    ) -> List[RetrievedItem]:
        """Run the lexical query against the service and map its results."""

    def _item(
        self,
        *,
        item_id: str,
        content: str,
        summary: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> RetrievedItem:
        return RetrievedItem(
            type=connector_type(self.kind),
            id=item_id,
            content=content,
            summary=summary,
            similarity=self.score,
            metadata=ItemMetadata(created_at=created_at, provenance=self.kind),
        )

    async def _get_json(
        self,
        url: str,
        credentials: ConnectorCredentials,
        params: Any = None,
    ) -> Dict[str, Any]:
        """GET with bearer auth; non-2xx and transport errors raise SourceUnavailable."""
        try:
            response = await self._client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {credentials.access_token}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise SourceUnavailable(self.name, f"request failed: {exc}", cause=exc) from exc

        if response.status_code >= 400:
            raise SourceUnavailable(self.name, f"API error: {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceUnavailable(self.name, "invalid JSON response", cause=exc) from exc
        return payload if isinstance(payload, dict) else {}

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
