"""Semantic embedding providers.

- HashEmbeddingProvider: deterministic feature hashing, no network. Texts
  sharing words get similar vectors; identical texts get identical vectors.
- OpenRouterEmbeddingProvider: remote embedding model via OpenRouter.
"""

from __future__ import annotations

import hashlib
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import numpy as np

from codegen import settings
from codegen.integrations.openrouter_client import OpenRouterClient

_TOKEN_RE = re.compile(r"[A-Za-z][a-z]*|[0-9]+")


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens; camelCase and PascalCase are split."""
    return [t.lower() for t in _TOKEN_RE.findall(text)]


def describe_component(parsed: Dict[str, Any], component_type: Optional[str] = None) -> str:
    """Text used for the semantic embedding of a parsed component."""
    parts = [parsed.get("name", "")]
    if component_type:
        parts.append(component_type)
    node_type = parsed.get("node_type")
    if node_type:
        parts.append(node_type.lower())
    parts.extend(parsed.get("text_content", [])[:10])
    return " ".join(p for p in parts if p)


class EmbeddingProvider(ABC):
    """Turns text into a fixed-length vector."""

    model_name: str

    @property
    @abstractmethod
    def dimensions(self) -> Optional[int]:
        """Vector length, if known before the first call."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        ...

    async def close(self) -> None:
        pass


class HashEmbeddingProvider(EmbeddingProvider):
    """Feature-hashed bag of words, L2-normalized.

    Each token is hashed (md5) to a bucket and a sign; the vector is the sum
    over tokens. Empty text yields the zero vector.
    """

    def __init__(self, dimensions: int = settings.HASH_EMBEDDING_DIMENSIONS):
        if dimensions <= 0:
            raise ValueError("dimensions must be > 0")
        self._dimensions = dimensions
        self.model_name = f"hash-bow-{dimensions}"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed_sync(self, text: str) -> List[float]:
        vector = np.zeros(self._dimensions, dtype=np.float64)
        for token in tokenize(text):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "big") % self._dimensions
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()

    async def embed(self, text: str) -> List[float]:
        return self.embed_sync(text)


class OpenRouterEmbeddingProvider(EmbeddingProvider):
    """Embeddings from an OpenRouter-hosted model (e.g. openai/text-embedding-3-small)."""

    def __init__(self, client: OpenRouterClient, model_name: str):
        self.client = client
        self.model_name = model_name
        self._dimensions: Optional[int] = None

    @property
    def dimensions(self) -> Optional[int]:
        return self._dimensions

    async def embed(self, text: str) -> List[float]:
        vectors = await self.client.create_embeddings(self.model_name, [text])
        self._dimensions = len(vectors[0])
        return vectors[0]
