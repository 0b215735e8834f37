"""Shared pytest fixtures for cria tests.

Most tests account with one token per character and no protocol overhead,
so expected costs can be read straight off the test text.
"""

from __future__ import annotations

from typing import Any

import pytest

from cria.context.accountant import ProtocolOverhead, TokenAccountant
from cria.core.interfaces import SearchResult, SummarizerContext
from cria.core.types import WireProtocol
from cria.session.events import TraceEvent
from cria.store.memory import InMemoryStore


class CharCounter:
    """One token per character."""

    def count(self, text: str) -> int:
        return len(text)


def zero_overheads() -> dict[WireProtocol, ProtocolOverhead]:
    return {
        protocol: ProtocolOverhead(replays_reasoning=protocol != WireProtocol.OPENAI_CHAT)
        for protocol in WireProtocol
    }


class RecordingSink:
    """Trace sink that keeps every event."""

    def __init__(self) -> None:
        self.events: list[TraceEvent] = []

    def emit(self, event: TraceEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]


class CountingSummarizer:
    """Async summarizer returning a fixed text and recording its calls."""

    def __init__(self, text: str = "short") -> None:
        self.text = text
        self.calls: list[SummarizerContext] = []

    async def __call__(self, ctx: SummarizerContext) -> str:
        self.calls.append(ctx)
        return self.text


class StaticVectorStore:
    """Vector store returning canned results and recording queries."""

    def __init__(self, results: list[SearchResult] | None = None, error: Exception | None = None) -> None:
        self.results = results or []
        self.error = error
        self.queries: list[tuple[str, int, float | None]] = []

    def get(self, key: str) -> None:
        return None

    def set(self, key: str, value: Any, metadata: dict[str, Any] | None = None) -> None:
        pass

    def delete(self, key: str) -> bool:
        return False

    async def search(
        self, query: str, *, limit: int = 10, threshold: float | None = None
    ) -> list[SearchResult]:
        self.queries.append((query, limit, threshold))
        if self.error is not None:
            raise self.error
        return list(self.results)


@pytest.fixture
def accountant() -> TokenAccountant:
    """Accountant charging one token per character with no overhead."""
    return TokenAccountant(CharCounter(), zero_overheads())


@pytest.fixture
def char_counter() -> CharCounter:
    return CharCounter()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def summarizer() -> CountingSummarizer:
    return CountingSummarizer()


@pytest.fixture
def kv_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def vector_store_factory():
    """Build a StaticVectorStore with the given results or error."""
    return StaticVectorStore
