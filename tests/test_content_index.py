"""Tests for recollect.store.content_index and the vector content source."""

import pytest
from qdrant_client import QdrantClient

from recollect.core.errors import SourceNotProvisioned
from recollect.sources.base import SourceQuery
from recollect.sources.content import VectorContentSource
from recollect.store.content_index import QdrantContentIndex


@pytest.fixture
def index():
    idx = QdrantContentIndex(QdrantClient(location=":memory:"), embedding_dims=2)
    idx.upsert(
        item_id="m1",
        owner_id="u1",
        item_type="message",
        content="We picked teal for the kitchen",
        embedding=[1.0, 0.0],
        container_id="conv-1",
        container_title="Home reno",
        scope_id="proj-home",
        created_at="2024-03-05T10:00:00Z",
    )
    idx.upsert(
        item_id="m2",
        owner_id="u1",
        item_type="message",
        content="Current conversation turn",
        embedding=[1.0, 0.0],
        container_id="conv-2",
        scope_id="proj-home",
    )
    idx.upsert(
        item_id="f1",
        owner_id="u1",
        item_type="file",
        content="paint,teal,2 gallons",
        summary="paint.csv",
        embedding=[0.9, 0.1],
        container_id="conv-1",
        scope_id="proj-work",
    )
    idx.upsert(
        item_id="x1",
        owner_id="u2",
        item_type="message",
        content="someone else's message",
        embedding=[1.0, 0.0],
        container_id="conv-9",
    )
    yield idx
    idx.close()


def _query(**kwargs):
    kwargs.setdefault("vector", [1.0, 0.0])
    kwargs.setdefault("query_text", "kitchen colour")
    kwargs.setdefault("owner_id", "u1")
    kwargs.setdefault("limit", 10)
    return SourceQuery(**kwargs)


class TestIndexSearch:
    def test_owner_filter(self, index):
        hits = index.search([1.0, 0.0], "u1", threshold=0.0, limit=10)
        assert {p["item_id"] for p, _ in hits} == {"m1", "m2", "f1"}

    def test_excludes_container(self, index):
        hits = index.search([1.0, 0.0], "u1", exclude_container_id="conv-2", threshold=0.0, limit=10)
        assert "m2" not in {p["item_id"] for p, _ in hits}

    def test_scope_filter(self, index):
        hits = index.search([1.0, 0.0], "u1", scope_id="proj-work", threshold=0.0, limit=10)
        assert [p["item_id"] for p, _ in hits] == ["f1"]

    def test_threshold(self, index):
        hits = index.search([0.0, 1.0], "u1", threshold=0.65, limit=10)
        assert hits == []

    def test_delete_container(self, index):
        index.delete_container("u1", "conv-1")
        hits = index.search([1.0, 0.0], "u1", threshold=0.0, limit=10)
        assert [p["item_id"] for p, _ in hits] == ["m2"]

    def test_delete_item(self, index):
        index.delete("m2")
        assert index.count() == 3

    def test_missing_collection_is_not_provisioned(self):
        idx = QdrantContentIndex(QdrantClient(location=":memory:"), embedding_dims=2, create_collection=False)
        with pytest.raises(SourceNotProvisioned):
            idx.search([1.0, 0.0], "u1", threshold=0.0, limit=5)
        idx.close()


class TestVectorContentSource:
    @pytest.mark.asyncio
    async def test_maps_payloads_to_items(self, index):
        source = VectorContentSource(index, threshold=0.65)

        items = await source.search(_query(exclude_container_id="conv-2"))

        by_id = {i.id: i for i in items}
        assert set(by_id) == {"m1", "f1"}
        assert by_id["m1"].type == "message"
        assert by_id["m1"].metadata.container_title == "Home reno"
        assert by_id["m1"].provenance == "local"
        assert by_id["f1"].type == "file"
        assert by_id["f1"].summary == "paint.csv"
        assert all(0.0 <= i.similarity <= 1.0 for i in items)

    @pytest.mark.asyncio
    async def test_self_exclusion_holds_even_if_index_ignores_filter(self):
        class LeakyIndex:
            def search(self, *args, **kwargs):
                return [
                    ({"item_id": "m2", "item_type": "message", "content": "current", "container_id": "conv-2"}, 0.99),
                    ({"item_id": "m1", "item_type": "message", "content": "older", "container_id": "conv-1"}, 0.8),
                ]

        source = VectorContentSource(LeakyIndex())
        items = await source.search(_query(exclude_container_id="conv-2"))

        assert [i.id for i in items] == ["m1"]

    @pytest.mark.asyncio
    async def test_unprovisioned_index_yields_empty(self):
        idx = QdrantContentIndex(QdrantClient(location=":memory:"), embedding_dims=2, create_collection=False)
        source = VectorContentSource(idx)

        assert await source.search(_query()) == []
        idx.close()
