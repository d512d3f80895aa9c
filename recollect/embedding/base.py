"""
Recollect Embedder Base
=======================
Abstract embedding capability: ``embed(text) -> EmbeddingResult``.

Implementations raise EmbeddingFailure on any provider error. The engine never
pre-truncates input; length policy belongs to the provider.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

from recollect.core.types import EmbeddingResult

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token count used for cost accounting."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_cost(text: str, price_per_1k_tokens: float) -> float:
    return (estimate_tokens(text) / 1000) * price_per_1k_tokens


class Embedder(ABC):
    """Text to fixed-length vector, with a cost unit per call."""

    #: Provider identity used in logs
    name: str = "embedder"

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Embed a single text. Raises EmbeddingFailure."""

    async def close(self) -> None:
        """Release provider resources."""
