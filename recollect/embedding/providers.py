"""
Recollect Embedding Providers
-----------------------------
HTTP embedding providers over httpx:

- OllamaEmbedder: local Ollama ``/api/embeddings``
- OpenAIEmbedder: OpenAI-compatible ``/embeddings`` (text-embedding-3-small)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from recollect.core.errors import EmbeddingFailure
from recollect.core.types import EmbeddingResult
from recollect.embedding.base import Embedder, estimate_cost

logger = logging.getLogger("Recollect.Embedding")


def _coerce_vector(raw: Any, provider: str) -> List[float]:
    if not isinstance(raw, list) or not raw:
        raise EmbeddingFailure(f"{provider} returned no embedding")
    try:
        return [float(v) for v in raw]
    except (TypeError, ValueError) as exc:
        raise EmbeddingFailure(f"{provider} returned a malformed embedding: {exc}") from exc


class _HTTPEmbedder(Embedder):
    """Shared client ownership and error translation for HTTP providers."""

    def __init__(
        self,
        *,
        model: str,
        timeout: float = 30.0,
        price_per_1k_tokens: float = 0.00002,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.timeout = timeout
        self.price_per_1k_tokens = price_per_1k_tokens
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(headers={"Accept": "application/json"})

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Any:
        try:
            response = await self._client.post(url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("%s embedding failed: HTTP %s", self.name, exc.response.status_code)
            raise EmbeddingFailure(
                f"{self.name} embedding request failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("%s embedding failed: %s", self.name, exc)
            raise EmbeddingFailure(f"{self.name} embedding request failed: {exc}") from exc
        except ValueError as exc:
            logger.error("%s embedding returned invalid JSON: %s", self.name, exc)
            raise EmbeddingFailure(f"{self.name} returned invalid JSON") from exc


class OllamaEmbedder(_HTTPEmbedder):
    """Generate embeddings via the Ollama API."""

    name = "ollama"

    def __init__(self, base_url: str = "http://localhost:11434", model: str = "nomic-embed-text", **kwargs):
        super().__init__(model=model, **kwargs)
        self.base_url = base_url.rstrip("/")

    async def embed(self, text: str) -> EmbeddingResult:
        data = await self._post(
            f"{self.base_url}/api/embeddings",
            {"model": self.model, "prompt": text},
        )
        vector = _coerce_vector(data.get("embedding") if isinstance(data, dict) else None, self.name)
        return EmbeddingResult(vector=vector, cost_units=estimate_cost(text, self.price_per_1k_tokens))


class OpenAIEmbedder(_HTTPEmbedder):
    """Generate embeddings via an OpenAI-compatible ``/embeddings`` endpoint."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "text-embedding-3-small",
        dimensions: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(model=model, **kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.dimensions = dimensions

    async def embed(self, text: str) -> EmbeddingResult:
        payload: Dict[str, Any] = {"model": self.model, "input": text}
        if self.dimensions:
            payload["dimensions"] = self.dimensions
        data = await self._post(
            f"{self.base_url}/embeddings",
            payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        try:
            raw = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise EmbeddingFailure(f"{self.name} response missing embedding data") from exc
        vector = _coerce_vector(raw, self.name)
        return EmbeddingResult(vector=vector, cost_units=estimate_cost(text, self.price_per_1k_tokens))
