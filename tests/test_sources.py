"""Tests for the local sources and the adapter boundary."""

import asyncio
import logging

import pytest

from recollect.core.errors import SourceNotProvisioned
from recollect.core.types import MemoryCategory
from recollect.sources.base import SourceAdapter, SourceQuery
from recollect.sources.memory import MemorySource, memory_to_item
from recollect.store.memory_store import SQLiteMemoryStore


def _query(**kwargs) -> SourceQuery:
    kwargs.setdefault("vector", [1.0, 0.0])
    kwargs.setdefault("query_text", "q")
    kwargs.setdefault("owner_id", "u1")
    kwargs.setdefault("limit", 10)
    return SourceQuery(**kwargs)


class _Raising(SourceAdapter):
    name = "raising"

    def __init__(self, error, **kwargs):
        super().__init__(**kwargs)
        self.error = error

    async def _search(self, query):
        raise self.error


class _Sleeping(SourceAdapter):
    name = "sleeping"

    async def _search(self, query):
        await asyncio.sleep(5)
        return []


class TestAdapterBoundary:
    @pytest.mark.asyncio
    async def test_not_provisioned_logs_info(self, caplog):
        caplog.set_level(logging.DEBUG, logger="Recollect.Sources")
        source = _Raising(SourceNotProvisioned("raising", "table missing"))

        assert await source.search(_query()) == []
        records = [r for r in caplog.records if "not provisioned" in r.getMessage()]
        assert records and records[0].levelno == logging.INFO

    @pytest.mark.asyncio
    async def test_unexpected_error_logs_warning(self, caplog):
        caplog.set_level(logging.DEBUG, logger="Recollect.Sources")
        source = _Raising(RuntimeError("boom"))

        assert await source.search(_query()) == []
        assert any(r.levelno == logging.WARNING and "boom" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_timeout_returns_empty(self, caplog):
        caplog.set_level(logging.DEBUG, logger="Recollect.Sources")
        source = _Sleeping(timeout=0.05)

        assert await source.search(_query()) == []
        assert any("timed out" in r.getMessage() for r in caplog.records)


class TestMemorySource:
    @pytest.mark.asyncio
    async def test_returns_memory_items_above_threshold(self, tmp_path):
        store = SQLiteMemoryStore(tmp_path / "m.db")
        store.upsert(owner_id="u1", key="diet", value="vegetarian", category=MemoryCategory.PREFERENCE, embedding=[1.0, 0.0])
        store.upsert(owner_id="u1", key="car", value="blue", category=MemoryCategory.FACT, embedding=[0.0, 1.0])
        source = MemorySource(store, threshold=0.6, limit=5)

        items = await source.search(_query(scope_id="ignored-scope"))
        store.close()

        assert [i.content for i in items] == ["diet: vegetarian"]
        assert items[0].type == "memory"
        assert items[0].provenance == "memory"
        assert items[0].similarity == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_limit_is_min_of_source_and_request(self, tmp_path):
        store = SQLiteMemoryStore(tmp_path / "m.db")
        for n in range(6):
            store.upsert(owner_id="u1", key=f"k{n}", value="v", category=MemoryCategory.FACT, embedding=[1.0, 0.0])
        source = MemorySource(store, threshold=0.0, limit=5)

        assert len(await source.search(_query(limit=3))) == 3
        assert len(await source.search(_query(limit=50))) == 5
        store.close()

    @pytest.mark.asyncio
    async def test_missing_table_degrades_to_empty(self, tmp_path):
        store = SQLiteMemoryStore(tmp_path / "fresh.db", create_schema=False)
        source = MemorySource(store)

        assert await source.search(_query()) == []
        store.close()


def test_memory_to_item_renders_key_value():
    from recollect.core.types import Memory

    item = memory_to_item(Memory(owner_id="u1", key="callsign", value="Falcon", created_at=0.0), 0.9)
    assert item.content == "callsign: Falcon"
    assert item.metadata.created_at.startswith("1970-01-01")
