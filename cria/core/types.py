"""Core types for cria.

This module defines the content tree that every other component works on:
message parts, messages, prioritized scopes with their reduction strategies,
and the prompt tree root. All dataclasses are frozen; the engine never
mutates a caller's tree and builds new trees instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from cria.context.token_counter import TokenCounter
    from cria.core.interfaces import KVStore, SearchResult, Summarizer, VectorStore


class Role(Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    DEVELOPER = "developer"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class WireProtocol(str, Enum):
    """Provider wire schemas the codecs know how to produce."""

    OPENAI_CHAT = "openai-chat"
    OPENAI_RESPONSES = "openai-responses"
    ANTHROPIC = "anthropic"


# --- Message parts ---


@dataclass(frozen=True)
class Text:
    """Literal text inside a message."""

    text: str


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the assistant.

    Attributes:
        tool_call_id: Identifier that pairs the call with its result.
        tool_name: Name of the tool being called.
        input: Serialized input. A JSON string for OpenAI protocols, a JSON
            object for Anthropic; codecs convert between the two.
    """

    tool_call_id: str
    tool_name: str
    input: Any


@dataclass(frozen=True)
class ToolResult:
    """Output of a tool call, carried by a tool-role message."""

    tool_call_id: str
    tool_name: str
    output: Any


@dataclass(frozen=True)
class Reasoning:
    """Opaque reasoning text replayed to reasoning-capable protocols.

    Attributes:
        text: The reasoning content.
        signature: Provider signature that must accompany replayed thinking
            (Anthropic). None when the provider does not issue one.
    """

    text: str
    signature: str | None = None


Part = Union[Text, ToolCall, ToolResult, Reasoning]


@dataclass(frozen=True)
class Message:
    """A role-tagged message with an ordered sequence of parts.

    Attributes:
        role: The role of the message sender.
        children: Parts in declaration order. Order is preserved by every
            codec that can represent it.
        id: Optional stable identifier.
    """

    role: Role
    children: tuple[Part, ...] = ()
    id: str | None = None

    @property
    def text(self) -> str:
        """Concatenated text of all Text parts."""
        return "".join(p.text for p in self.children if isinstance(p, Text))


# --- Strategies ---


class TruncateFrom(str, Enum):
    """Side a Truncate strategy removes children from."""

    START = "start"
    END = "end"


@dataclass(frozen=True)
class Omit:
    """On reduction, drop the scope and everything under it."""


@dataclass(frozen=True)
class Truncate:
    """Remove whole immediate children from one side until the scope fits.

    Attributes:
        direction: Which end children are removed from.
        budget: Optional local token cap for the scope. The effective target
            is the smaller of this and what the rest of the tree leaves.
    """

    direction: TruncateFrom = TruncateFrom.START
    budget: int | None = None


@dataclass(frozen=True)
class Last:
    """Keep only the final ``n`` children. Applied during resolution."""

    n: int


@dataclass(frozen=True, eq=False)
class Summary:
    """Replace the scope's content with a condensed summary.

    The scope's ``id`` is the cache key in ``store``.

    Attributes:
        store: Key-value store holding previously generated summaries.
        summarize: Summarizer for this scope. Falls back to the render-level
            summarizer when None.
        role: Role of the emitted summary message.
        max_age_seconds: Cached summaries older than this are regenerated.
    """

    store: KVStore
    summarize: Summarizer | None = None
    role: Role = Role.SYSTEM
    max_age_seconds: float | None = None


ResultFormatter = Callable[[list["SearchResult"]], str]


@dataclass(frozen=True, eq=False)
class VectorSearch:
    """Replace the scope's content with top-K store matches.

    The query is taken from the scope's own message text when present,
    otherwise from ``query``.

    Attributes:
        store: Vector store to search.
        query: Query text used when the scope has no text children.
        limit: Maximum number of results.
        threshold: Minimum similarity score, None for no cutoff.
        role: Role of the emitted results message.
        formatter: Turns results into message text. Defaults to a numbered list.
    """

    store: VectorStore
    query: str | None = None
    limit: int = 5
    threshold: float | None = None
    role: Role = Role.USER
    formatter: ResultFormatter | None = None


@dataclass(frozen=True)
class Pin:
    """Request a deterministic provider cache key for the scope.

    Attributes:
        id: Pin identifier.
        version: Bumped by the caller whenever pinned content changes.
        scope_key: Caller-defined partition (tenant, user, ...).
        ttl_seconds: Desired provider cache lifetime.
    """

    id: str
    version: str = "1"
    scope_key: str = ""
    ttl_seconds: int | None = None


Strategy = Union[Omit, Truncate, Last, Summary, VectorSearch, Pin]

# Strategies the Fit Engine may apply under budget pressure.
REDUCIBLE_STRATEGIES: tuple[type, ...] = (Omit, Truncate, Summary)


# --- Tree ---


@dataclass(frozen=True)
class Scope:
    """A prioritized grouping of nodes; the unit of fitting.

    Attributes:
        children: Messages or nested scopes in declaration order.
        priority: Lower is more important. Higher numbers are reduced first.
        strategy: Reduction policy. A scope without one is never reduced.
        id: Optional stable identifier, unique within a tree.
        materialized: Set by resolution once Last/VectorSearch has been applied.
        summary: Summary text prepared during resolution, substituted by the
            Fit Engine if the scope is chosen for reduction.
    """

    children: tuple[Node, ...] = ()
    priority: int = 0
    strategy: Strategy | None = None
    id: str | None = None
    materialized: bool = False
    summary: str | None = None


Node = Union[Message, Scope]


@dataclass(frozen=True)
class PromptTree:
    """Root scope plus render metadata.

    Construction validates the tree and raises ConstructionError for
    duplicate ids or malformed content.

    Attributes:
        root: The root scope.
        protocol: Target wire protocol. None means the configured default.
        budget: Token budget, None for unlimited.
        model: Model identifier, used for cache keys.
        counter: Tokenizer used for accounting. None means the configured default.
    """

    root: Scope
    protocol: WireProtocol | None = None
    budget: int | None = None
    model: str = ""
    counter: TokenCounter | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        from cria.core.validation import validate_tree

        validate_tree(self.root)
        if self.budget is not None and self.budget < 0:
            from cria.core.errors import ConstructionError

            raise ConstructionError(f"Budget must be non-negative, got {self.budget}")


def scope(
    *children: Node,
    priority: int = 0,
    strategy: Strategy | None = None,
    id: str | None = None,
) -> Scope:
    """Build a Scope from positional children."""
    return Scope(children=tuple(children), priority=priority, strategy=strategy, id=id)


def message(role: Role, *parts: Part | str, id: str | None = None) -> Message:
    """Build a Message, wrapping bare strings in Text parts."""
    children = tuple(Text(p) if isinstance(p, str) else p for p in parts)
    return Message(role=role, children=children, id=id)
