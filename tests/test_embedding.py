"""Tests for the embedding providers and the embedding cache."""

import json

import httpx
import pytest

from recollect.core.errors import EmbeddingFailure
from recollect.embedding import CachedEmbedder, OllamaEmbedder, OpenAIEmbedder, estimate_cost, estimate_tokens

from tests.helpers import FakeEmbedder


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_cost_estimate():
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2
    assert estimate_cost("a" * 4000, 0.00002) == pytest.approx(0.00002)


class TestOllama:
    @pytest.mark.asyncio
    async def test_posts_prompt_and_reads_vector(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/embeddings"
            assert json.loads(request.content) == {"model": "nomic-embed-text", "prompt": "hello"}
            return httpx.Response(200, json={"embedding": [0.1, 0.2, 0.3]})

        async with _client(handler) as client:
            embedder = OllamaEmbedder(base_url="http://ollama.local/", http_client=client)
            result = await embedder.embed("hello")

        assert result.vector == [0.1, 0.2, 0.3]
        assert result.cost_units > 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"error": "model not loaded"}),
            httpx.Response(200, json={"embedding": []}),
            httpx.Response(200, content=b"not json"),
        ],
    )
    async def test_failures_raise_embedding_failure(self, response):
        async with _client(lambda request: response) as client:
            embedder = OllamaEmbedder(http_client=client)
            with pytest.raises(EmbeddingFailure):
                await embedder.embed("hello")

    @pytest.mark.asyncio
    async def test_transport_error_raises_embedding_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            embedder = OllamaEmbedder(http_client=client)
            with pytest.raises(EmbeddingFailure):
                await embedder.embed("hello")


class TestOpenAI:
    @pytest.mark.asyncio
    async def test_sends_bearer_and_dimensions(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/embeddings"
            assert request.headers["Authorization"] == "Bearer sk-test"
            body = json.loads(request.content)
            assert body == {"model": "text-embedding-3-small", "input": "hi", "dimensions": 3}
            return httpx.Response(200, json={"data": [{"embedding": [1, 0, 0]}]})

        async with _client(handler) as client:
            embedder = OpenAIEmbedder(api_key="sk-test", dimensions=3, http_client=client)
            result = await embedder.embed("hi")

        assert result.vector == [1.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_missing_data_raises(self):
        async with _client(lambda request: httpx.Response(200, json={"data": []})) as client:
            embedder = OpenAIEmbedder(api_key="sk-test", http_client=client)
            with pytest.raises(EmbeddingFailure):
                await embedder.embed("hi")


class TestCachedEmbedder:
    @pytest.mark.asyncio
    async def test_hit_costs_nothing(self):
        inner = FakeEmbedder(cost_units=0.5)
        cached = CachedEmbedder(inner)

        first = await cached.embed("same text")
        second = await cached.embed("same text")

        assert first.cost_units == 0.5
        assert second.cost_units == 0.0
        assert second.vector == first.vector
        assert inner.calls == ["same text"]
        assert cached.stats()["hits"] == 1
        assert cached.stats()["misses"] == 1

    @pytest.mark.asyncio
    async def test_lru_eviction(self):
        inner = FakeEmbedder()
        cached = CachedEmbedder(inner, max_size=2)

        await cached.embed("a")
        await cached.embed("b")
        await cached.embed("a")
        await cached.embed("c")
        await cached.embed("a")
        await cached.embed("b")

        # "b" was least recently used when "c" arrived.
        assert inner.calls == ["a", "b", "c", "b"]
        assert cached.stats()["evictions"] == 2

    @pytest.mark.asyncio
    async def test_expired_entries_are_refetched(self):
        inner = FakeEmbedder()
        cached = CachedEmbedder(inner, ttl_seconds=0)

        await cached.embed("a")
        await cached.embed("a")

        assert inner.calls == ["a", "a"]

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self):
        inner = FakeEmbedder(fail=True)
        cached = CachedEmbedder(inner)

        with pytest.raises(EmbeddingFailure):
            await cached.embed("a")
        inner.fail = False
        result = await cached.embed("a")

        assert result.cost_units > 0
        assert cached.stats()["size"] == 1
