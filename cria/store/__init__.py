"""Store implementations."""

from cria.store.memory import InMemoryStore, InMemoryVectorStore, cosine_similarity

__all__ = ["InMemoryStore", "InMemoryVectorStore", "cosine_similarity"]
