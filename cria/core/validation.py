"""Construction-time validation for prompt trees.

Everything here runs before any render so that a malformed tree fails fast
with ConstructionError instead of surfacing later as a codec or fit problem.
"""

from __future__ import annotations

from cria.core.errors import ConstructionError
from cria.core.types import (
    Last,
    Message,
    Pin,
    Reasoning,
    Role,
    Scope,
    Summary,
    Text,
    ToolCall,
    ToolResult,
    Truncate,
    VectorSearch,
)

_TEXT_ONLY_ROLES = frozenset({Role.SYSTEM, Role.DEVELOPER, Role.USER})


def validate_message(msg: Message, scope_id: str | None = None) -> None:
    """Check that a message's parts are allowed for its role.

    Rules:
    - tool messages carry exactly one ToolResult
    - system/developer/user messages carry only Text
    - assistant messages carry Text, Reasoning and ToolCall, never ToolResult

    Raises:
        ConstructionError: If the message violates a rule.
    """
    if not isinstance(msg.role, Role):
        raise ConstructionError(f"Unknown message role: {msg.role!r}", scope_id)

    for part in msg.children:
        if not isinstance(part, (Text, ToolCall, ToolResult, Reasoning)):
            raise ConstructionError(
                f"Message children must be message parts, got {type(part).__name__}",
                scope_id,
            )

    if msg.role == Role.TOOL:
        if len(msg.children) != 1 or not isinstance(msg.children[0], ToolResult):
            raise ConstructionError(
                "Tool messages must contain exactly one tool result", scope_id
            )
        return

    if msg.role in _TEXT_ONLY_ROLES:
        for part in msg.children:
            if not isinstance(part, Text):
                raise ConstructionError(
                    f"Only assistant messages may contain {type(part).__name__} parts",
                    scope_id,
                )
        return

    for part in msg.children:
        if isinstance(part, ToolResult):
            raise ConstructionError(
                "Tool results must be inside a tool message", scope_id
            )


def _validate_strategy(node: Scope) -> None:
    strategy = node.strategy
    if isinstance(strategy, Summary) and not node.id:
        raise ConstructionError("Summary scopes require an id (used as the cache key)")
    if isinstance(strategy, Truncate) and strategy.budget is not None and strategy.budget < 0:
        raise ConstructionError("Truncate budget must be non-negative", node.id)
    if isinstance(strategy, Last) and strategy.n < 0:
        raise ConstructionError("Last n must be non-negative", node.id)
    if isinstance(strategy, VectorSearch):
        if strategy.limit < 1:
            raise ConstructionError("VectorSearch limit must be at least 1", node.id)
        if not node.materialized and not _derive_query_text(node) and not (
            strategy.query and strategy.query.strip()
        ):
            raise ConstructionError(
                "VectorSearch has no query. Pass query= or give the scope a text message",
                node.id,
            )


def _derive_query_text(node: Scope) -> str:
    return "".join(
        child.text for child in node.children if isinstance(child, Message)
    ).strip()


def validate_tree(root: Scope) -> None:
    """Validate an entire tree.

    Raises:
        ConstructionError: On duplicate ids, non-node children, invalid
            messages, invalid strategy settings, or more than one Pin.
    """
    if not isinstance(root, Scope):
        raise ConstructionError(f"Tree root must be a Scope, got {type(root).__name__}")

    seen: set[str] = set()
    duplicates: list[str] = []
    pins: list[str] = []

    def note_id(node_id: str | None) -> None:
        if node_id is None:
            return
        if not isinstance(node_id, str) or not node_id.strip():
            raise ConstructionError(f"Ids must be non-empty strings, got {node_id!r}")
        if node_id in seen:
            if node_id not in duplicates:
                duplicates.append(node_id)
        else:
            seen.add(node_id)

    def walk(node: Scope) -> None:
        note_id(node.id)
        if isinstance(node.priority, bool) or not isinstance(node.priority, int):
            raise ConstructionError(
                f"Priority must be an integer, got {node.priority!r}", node.id
            )
        _validate_strategy(node)
        if isinstance(node.strategy, Pin):
            pins.append(node.strategy.id)

        for child in node.children:
            if isinstance(child, Scope):
                walk(child)
            elif isinstance(child, Message):
                note_id(child.id)
                validate_message(child, node.id)
            else:
                raise ConstructionError(
                    f"Scope children must be messages or scopes, got {type(child).__name__}",
                    node.id,
                )

    walk(root)

    if duplicates:
        raise ConstructionError(f"Ids must be unique. Duplicate ids: {', '.join(duplicates)}")
    if len(pins) > 1:
        raise ConstructionError(f"At most one Pin per tree, found: {', '.join(pins)}")
