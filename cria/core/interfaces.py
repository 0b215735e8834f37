"""Core interfaces (protocols) for cria.

Stores, summarizers and trace sinks are collaborators the engine consumes
but does not own. Using Protocols keeps them structural: any object with the
right methods works, sync or async.
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, Union

if TYPE_CHECKING:
    from cria.core.types import Message, Scope
    from cria.session.events import TraceEvent


@dataclass(frozen=True)
class StoreEntry:
    """A stored value with timestamps for TTL and staleness checks.

    Attributes:
        value: The stored data.
        created_at: Unix timestamp of the first write.
        updated_at: Unix timestamp of the latest write.
        metadata: Caller-supplied metadata.
    """

    value: Any
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchResult:
    """One vector search match.

    Attributes:
        key: Key of the matching entry.
        score: Similarity score, higher is more similar.
        value: The stored data.
    """

    key: str
    score: float
    value: Any


# Store methods may be plain or coroutine functions.
MaybeAwaitable = Union[Any, Awaitable[Any]]


class KVStore(Protocol):
    """Key-value store contract used for cached summaries."""

    def get(self, key: str) -> MaybeAwaitable:
        """Return the StoreEntry for ``key`` or None."""
        ...

    def set(self, key: str, value: Any, metadata: dict[str, Any] | None = None) -> MaybeAwaitable:
        """Create or replace the entry for ``key``."""
        ...

    def delete(self, key: str) -> MaybeAwaitable:
        """Delete ``key``, returning True if it existed."""
        ...


class VectorStore(KVStore, Protocol):
    """Key-value store with similarity search."""

    def search(
        self, query: str, *, limit: int = 10, threshold: float | None = None
    ) -> MaybeAwaitable:
        """Return SearchResults sorted by score, highest first."""
        ...


@dataclass(frozen=True)
class SummarizerContext:
    """Everything a summarizer needs to condense a scope.

    Attributes:
        scope_id: Id of the scope being summarized (the cache key).
        target: The scope with its raw, resolved content.
        messages: The scope content flattened to messages.
        existing_summary: Previously stored summary to build upon, or None.
    """

    scope_id: str
    target: Scope
    messages: Sequence[Message]
    existing_summary: str | None = None


class Summarizer(Protocol):
    """Turns a scope into summary text. May be sync or async."""

    def __call__(self, ctx: SummarizerContext) -> str | Awaitable[str]:
        ...


class TraceSink(Protocol):
    """Passive observer of render events.

    Implementations must be quick; the engine calls them inline and ignores
    their failures.
    """

    def emit(self, event: TraceEvent) -> None:
        """Receive one trace event."""
        ...


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it."""
    if inspect.isawaitable(value):
        return await value
    return value
