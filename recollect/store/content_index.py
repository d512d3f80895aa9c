"""
Recollect Content Index
-----------------------
Qdrant-backed vector index over conversational messages and file content.
Wraps qdrant-client with owner/scope/container filtering.
"""

import logging
import uuid
from typing import Optional, List, Dict, Any, Tuple

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    VectorParams,
    PointStruct,
    Filter,
    FieldCondition,
    MatchValue,
    FilterSelector,
)

from recollect.core.errors import SourceNotProvisioned, SourceUnavailable

logger = logging.getLogger("Recollect.ContentIndex")

DEFAULT_COLLECTION = "recollect_content"
DEFAULT_DIMS = 768
SOURCE_NAME = "content"


def _point_id(item_id: str) -> str:
    return str(uuid.uuid5(uuid.NAMESPACE_DNS, item_id))


class QdrantContentIndex:
    """Manages message/file embeddings in Qdrant for similarity search."""

    def __init__(
        self,
        client: QdrantClient,
        collection_name: str = DEFAULT_COLLECTION,
        embedding_dims: int = DEFAULT_DIMS,
        create_collection: bool = True,
    ):
        self._client = client
        self.collection_name = collection_name
        self.embedding_dims = embedding_dims
        if create_collection:
            self.initialize()

    @classmethod
    def from_path(cls, path: str, **kwargs) -> "QdrantContentIndex":
        return cls(QdrantClient(path=path), **kwargs)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "QdrantContentIndex":
        return cls(QdrantClient(url=url), **kwargs)

    def initialize(self) -> None:
        if not self._client.collection_exists(self.collection_name):
            self._client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(
                    size=self.embedding_dims,
                    distance=Distance.COSINE,
                ),
            )
            logger.info("Created content collection '%s' (%d dims)", self.collection_name, self.embedding_dims)
        else:
            logger.info("Content collection '%s' exists", self.collection_name)

    def upsert(
        self,
        *,
        item_id: str,
        owner_id: str,
        item_type: str,
        content: str,
        embedding: List[float],
        summary: Optional[str] = None,
        container_id: Optional[str] = None,
        container_title: Optional[str] = None,
        scope_id: Optional[str] = None,
        scope_name: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> str:
        """Insert or update an indexed message/file. Returns the point ID."""
        point_id = _point_id(item_id)
        payload: Dict[str, Any] = {
            "item_id": item_id,
            "owner_id": owner_id,
            "item_type": item_type,
            "content": content,
            "summary": summary,
            "container_id": container_id,
            "container_title": container_title,
            "scope_id": scope_id,
            "scope_name": scope_name,
            "created_at": created_at,
        }
        self._client.upsert(
            collection_name=self.collection_name,
            points=[PointStruct(id=point_id, vector=embedding, payload=payload)],
        )
        return point_id

    def search(
        self,
        query_embedding: List[float],
        owner_id: str,
        *,
        scope_id: Optional[str] = None,
        exclude_container_id: Optional[str] = None,
        threshold: float = 0.0,
        limit: int = 10,
    ) -> List[Tuple[Dict[str, Any], float]]:
        """
        Search an owner's content by cosine similarity.
        Returns (payload, score) tuples, best first.
        """
        if limit <= 0:
            return []
        try:
            if not self._client.collection_exists(self.collection_name):
                raise SourceNotProvisioned(
                    SOURCE_NAME, f"collection '{self.collection_name}' not yet created"
                )

            conditions = [FieldCondition(key="owner_id", match=MatchValue(value=owner_id))]
            if scope_id:
                conditions.append(FieldCondition(key="scope_id", match=MatchValue(value=scope_id)))
            must_not = []
            if exclude_container_id:
                must_not.append(
                    FieldCondition(key="container_id", match=MatchValue(value=exclude_container_id))
                )

            results = self._client.query_points(
                collection_name=self.collection_name,
                query=query_embedding,
                limit=limit,
                score_threshold=threshold,
                query_filter=Filter(must=conditions, must_not=must_not or None),
                with_payload=True,
            ).points
        except SourceNotProvisioned:
            raise
        except Exception as e:
            raise SourceUnavailable(SOURCE_NAME, f"query failed: {e}", cause=e) from e

        return [
            (dict(hit.payload), float(hit.score))
            for hit in results
            if hit.payload and "item_id" in hit.payload
        ]

    def delete(self, item_id: str) -> bool:
        """Delete an indexed item by its source id."""
        self._client.delete(
            collection_name=self.collection_name,
            points_selector=[_point_id(item_id)],
        )
        return True

    def delete_container(self, owner_id: str, container_id: str) -> bool:
        """Delete every indexed item belonging to one container."""
        self._client.delete(
            collection_name=self.collection_name,
            points_selector=FilterSelector(
                filter=Filter(
                    must=[
                        FieldCondition(key="owner_id", match=MatchValue(value=owner_id)),
                        FieldCondition(key="container_id", match=MatchValue(value=container_id)),
                    ]
                )
            ),
        )
        return True

    def count(self) -> int:
        info = self._client.get_collection(self.collection_name)
        return info.points_count or 0

    def close(self):
        if self._client:
            self._client.close()
