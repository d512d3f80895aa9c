"""End-to-end tests for recollect.core.engine.ContextEngine."""

from unittest.mock import MagicMock

import pytest
from qdrant_client import QdrantClient

from recollect.core.config import ConnectorConfig, ContentIndexConfig, EngineConfig, MemoryStoreConfig
from recollect.core.errors import EmbeddingFailure, MemoryWriteFailure
from recollect.core.engine import ContextEngine
from recollect.core.types import ContextRequest, RememberCommand
from recollect.embedding import CachedEmbedder, OllamaEmbedder
from recollect.sources.connectors.base import ConnectorSource
from recollect.sources.content import VectorContentSource
from recollect.sources.memory import MemorySource
from recollect.store.content_index import QdrantContentIndex
from recollect.store.memory_store import SQLiteMemoryStore

from tests.helpers import FakeEmbedder


@pytest.fixture
def engine(tmp_path):
    embedder = FakeEmbedder(vector=[1.0, 0.0])
    store = SQLiteMemoryStore(tmp_path / "memories.db")
    index = QdrantContentIndex(QdrantClient(location=":memory:"), embedding_dims=2)
    index.upsert(
        item_id="m-old",
        owner_id="u1",
        item_type="message",
        content="Let's do sushi on Friday",
        embedding=[0.9, 0.1],
        container_id="conv-1",
        container_title="Weekend",
    )
    index.upsert(
        item_id="m-now",
        owner_id="u1",
        item_type="message",
        content="What are my lunch plans?",
        embedding=[1.0, 0.0],
        container_id="conv-2",
    )
    return ContextEngine(
        embedder,
        store,
        sources=[VectorContentSource(index), MemorySource(store)],
        content_index=index,
    )


@pytest.mark.asyncio
async def test_store_then_retrieve(engine):
    await engine.store_memory("u1", "lunch preference", "sushi")

    result = await engine.retrieve_context(
        ContextRequest(owner_id="u1", query_text="lunch?", exclude_container_id="conv-2")
    )

    ids = [i.id for i in result.items]
    assert "m-now" not in ids
    assert "m-old" in ids
    assert result.items[0].type == "memory"
    assert "## User's Saved Information\n- lunch preference: sushi" in result.formatted_text
    await engine.close()


@pytest.mark.asyncio
async def test_other_owner_sees_nothing(engine):
    await engine.store_memory("u1", "lunch preference", "sushi")

    result = await engine.retrieve_context(ContextRequest(owner_id="u2", query_text="lunch?"))

    assert result.items == []
    assert result.formatted_text == ""
    await engine.close()


@pytest.mark.asyncio
async def test_memory_management_round(engine):
    stored = await engine.store_memory("u1", "callsign", "Falcon", "fact")
    await engine.store_memory("u1", "callsign", "Hawk")

    memories = await engine.get_memories("u1")
    assert [(m.id, m.value) for m in memories] == [(stored.id, "Hawk")]

    assert await engine.delete_memory("u2", stored.id) is None
    assert len(await engine.get_memories("u1")) == 1
    assert await engine.delete_memory("u1", stored.id) is None
    assert await engine.get_memories("u1") == []
    await engine.close()


@pytest.mark.asyncio
async def test_embedding_failure_surfaces_on_both_paths(engine):
    engine.embedder.fail = True

    with pytest.raises(EmbeddingFailure):
        await engine.retrieve_context(ContextRequest(owner_id="u1", query_text="lunch?"))
    with pytest.raises(MemoryWriteFailure):
        await engine.store_memory("u1", "k", "v")
    await engine.close()


def test_parse_remember_command_is_exposed():
    assert ContextEngine.parse_remember_command("remember my callsign is Falcon") == RememberCommand(
        key="callsign", value="Falcon"
    )
    assert ContextEngine.parse_remember_command("what's the weather?") is None


@pytest.mark.asyncio
async def test_from_config_wires_backends(tmp_path):
    config = EngineConfig(
        data_dir=str(tmp_path),
        content_index=ContentIndexConfig(path=str(tmp_path / "qdrant"), dimensions=2),
        memory_store=MemoryStoreConfig(path=str(tmp_path / "memories.db")),
        connectors=ConnectorConfig(enabled=["calendar", "drive"]),
    )

    engine = ContextEngine.from_config(config)
    try:
        assert isinstance(engine.embedder, CachedEmbedder)
        assert isinstance(engine.embedder.inner, OllamaEmbedder)
        assert [s.name for s in engine.coordinator.sources] == ["content", "memory"]
        assert [c.kind for c in engine.coordinator.connectors] == ["calendar", "drive"]
        assert [k for k, _ in engine.coordinator.formatter.connector_sections] == ["calendar", "drive"]

        empty = await engine.retrieve_context(ContextRequest(owner_id="u1", query_text="x", max_results=0))
        assert empty.items == []
    finally:
        await engine.close()
    # Second close is a no-op.
    await engine.close()


class _BrokenCloseConnector(ConnectorSource):
    kind = "calendar"
    credential_group = "google"

    async def _query(self, query_text, credentials, limit):
        return []

    async def close(self) -> None:
        raise RuntimeError("socket already gone")


class _ClosingEmbedder(FakeEmbedder):
    def __init__(self):
        super().__init__(vector=[1.0, 0.0])
        self.closed = False

    async def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_close_continues_past_a_failing_resource():
    embedder = _ClosingEmbedder()
    store = MagicMock()
    index = MagicMock()
    engine = ContextEngine(
        embedder,
        store,
        connectors=[_BrokenCloseConnector()],
        content_index=index,
    )

    await engine.close()

    assert embedder.closed
    store.close.assert_called_once()
    index.close.assert_called_once()
