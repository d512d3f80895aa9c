from recollect.embedding.base import Embedder, estimate_cost, estimate_tokens
from recollect.embedding.cache import CachedEmbedder
from recollect.embedding.providers import OllamaEmbedder, OpenAIEmbedder

__all__ = [
    "Embedder",
    "CachedEmbedder",
    "OllamaEmbedder",
    "OpenAIEmbedder",
    "estimate_cost",
    "estimate_tokens",
]
