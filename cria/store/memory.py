"""In-memory store implementations.

Reference implementations of the KVStore and VectorStore contracts. They
are suitable for development, tests and short-lived processes; production
deployments plug in a persistent backend with the same methods.
"""

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from cria.core.interfaces import SearchResult, StoreEntry, maybe_await

logger = logging.getLogger(__name__)

EmbedFunction = Callable[[str], "Sequence[float] | Awaitable[Sequence[float]]"]


class InMemoryStore:
    """Dict-backed key-value store.

    Example:
        store = InMemoryStore()
        Summary(store=store, summarize=my_summarizer)
    """

    def __init__(self) -> None:
        self._entries: dict[str, StoreEntry] = {}

    def get(self, key: str) -> StoreEntry | None:
        return self._entries.get(key)

    def set(self, key: str, value: Any, metadata: dict[str, Any] | None = None) -> None:
        """Create or replace an entry, keeping its original creation time."""
        now = time.time()
        existing = self._entries.get(key)
        self._entries[key] = StoreEntry(
            value=value,
            created_at=existing.created_at if existing else now,
            updated_at=now,
            metadata=dict(metadata or {}),
        )

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def has(self, key: str) -> bool:
        return key in self._entries

    def list(self, prefix: str = "") -> list[tuple[str, StoreEntry]]:
        """Return (key, entry) pairs sorted by key, optionally filtered by prefix."""
        return [
            (key, self._entries[key])
            for key in sorted(self._entries)
            if key.startswith(prefix)
        ]

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, 0.0 when either has zero length.

    Raises:
        ValueError: If the vectors have different dimensions.
    """
    if len(a) != len(b):
        raise ValueError(f"Vector dimension mismatch: {len(a)} vs {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    magnitude = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if magnitude == 0:
        return 0.0
    return dot / magnitude


class InMemoryVectorStore:
    """Vector store using a caller-supplied embedding function.

    Scores are cosine similarity mapped to the 0-1 range, so a threshold of
    0.5 means "not pointing away from the query".

    Example:
        store = InMemoryVectorStore(embed=my_embedder)
        await store.set("doc1", "The quick brown fox")
        results = await store.search("fast fox", limit=1)
    """

    def __init__(self, embed: EmbedFunction) -> None:
        """Initialize the store.

        Args:
            embed: Maps text to an embedding vector. May be sync or async.
        """
        self._embed = embed
        self._entries: dict[str, tuple[StoreEntry, Sequence[float]]] = {}

    def get(self, key: str) -> StoreEntry | None:
        stored = self._entries.get(key)
        return stored[0] if stored else None

    async def set(self, key: str, value: Any, metadata: dict[str, Any] | None = None) -> None:
        """Embed and store a value. Non-string values are embedded as JSON."""
        text = value if isinstance(value, str) else json.dumps(value, sort_keys=True, default=str)
        vector = await maybe_await(self._embed(text))
        now = time.time()
        existing = self._entries.get(key)
        entry = StoreEntry(
            value=value,
            created_at=existing[0].created_at if existing else now,
            updated_at=now,
            metadata=dict(metadata or {}),
        )
        self._entries[key] = (entry, list(vector))

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def search(
        self, query: str, *, limit: int = 10, threshold: float | None = None
    ) -> list[SearchResult]:
        """Return the entries most similar to ``query``, best first."""
        if not self._entries:
            return []

        query_vector = await maybe_await(self._embed(query))
        minimum = 0.0 if threshold is None else threshold
        results = []
        for key, (entry, vector) in self._entries.items():
            score = (cosine_similarity(query_vector, vector) + 1) / 2
            if score >= minimum:
                results.append(SearchResult(key=key, score=score, value=entry.value))

        results.sort(key=lambda r: r.score, reverse=True)
        logger.debug("Vector search matched %d of %d entries", len(results), len(self._entries))
        return results[:limit]

    def size(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
