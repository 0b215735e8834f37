"""Protocol-aware token accounting for content trees.

The Accountant owns the per-protocol overhead table: each wire format charges
a different fixed cost per message, tool call, tool result and reasoning
block on top of the text itself. Costs are a pure function of node content
and protocol, and adding a node to a subtree never lowers its cost.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from cria.context.token_counter import SimpleTokenCounter, TokenCounter
from cria.core.types import (
    Message,
    Reasoning,
    Scope,
    Text,
    ToolCall,
    ToolResult,
    WireProtocol,
)


@dataclass(frozen=True)
class ProtocolOverhead:
    """Fixed token charges for one wire protocol.

    Attributes:
        per_message: Charged once per message (role, delimiters).
        per_tool_call: Charged per tool call on top of name + input.
        per_tool_result: Charged per tool result on top of the output.
        per_reasoning: Charged per reasoning block on top of its text.
        replays_reasoning: False when the protocol drops reasoning parts, in
            which case they cost nothing.
    """

    per_message: int = 0
    per_tool_call: int = 0
    per_tool_result: int = 0
    per_reasoning: int = 0
    replays_reasoning: bool = True


DEFAULT_OVERHEADS: dict[WireProtocol, ProtocolOverhead] = {
    WireProtocol.OPENAI_CHAT: ProtocolOverhead(
        per_message=4, per_tool_call=3, replays_reasoning=False
    ),
    WireProtocol.OPENAI_RESPONSES: ProtocolOverhead(
        per_message=4, per_tool_call=4, per_tool_result=4, per_reasoning=4
    ),
    WireProtocol.ANTHROPIC: ProtocolOverhead(
        per_message=3, per_tool_call=3, per_tool_result=3, per_reasoning=3
    ),
}


def serialize_payload(value: Any) -> str:
    """Serialize a tool input/output for counting.

    Strings are counted as-is; anything else as compact, key-sorted JSON so
    the count does not depend on dict ordering.
    """
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


class TokenAccountant:
    """Computes token cost of nodes and subtrees under a protocol.

    Example:
        accountant = TokenAccountant(SimpleTokenCounter())
        total = accountant.cost(tree.root, WireProtocol.ANTHROPIC)
    """

    def __init__(
        self,
        counter: TokenCounter | None = None,
        overheads: Mapping[WireProtocol, ProtocolOverhead] | None = None,
    ) -> None:
        """Initialize the accountant.

        Args:
            counter: Text tokenizer. Defaults to SimpleTokenCounter.
            overheads: Per-protocol overrides merged over DEFAULT_OVERHEADS.
        """
        self.counter = counter or SimpleTokenCounter()
        self._overheads = dict(DEFAULT_OVERHEADS)
        if overheads:
            self._overheads.update(overheads)

    def overhead(self, protocol: WireProtocol) -> ProtocolOverhead:
        """Return the overhead table entry for a protocol."""
        return self._overheads.get(WireProtocol(protocol), ProtocolOverhead())

    def count_text(self, text: str) -> int:
        return self.counter.count(text) if text else 0

    def cost(self, node: Any, protocol: WireProtocol) -> int:
        """Return the token cost of a node, subtree or sequence of nodes.

        Args:
            node: A Scope, Message, message part, or a sequence of those.
            protocol: Protocol whose accounting rules apply.

        Raises:
            TypeError: If ``node`` is not a known node kind.
        """
        rules = self.overhead(protocol)
        return self._cost(node, rules)

    def _cost(self, node: Any, rules: ProtocolOverhead) -> int:
        match node:
            case Scope():
                return sum(self._cost(child, rules) for child in node.children)
            case Message():
                return rules.per_message + sum(
                    self._cost(part, rules) for part in node.children
                )
            case Text():
                return self.count_text(node.text)
            case ToolCall():
                return rules.per_tool_call + self.count_text(
                    node.tool_name + serialize_payload(node.input)
                )
            case ToolResult():
                return rules.per_tool_result + self.count_text(
                    serialize_payload(node.output)
                )
            case Reasoning():
                if not rules.replays_reasoning:
                    return 0
                return rules.per_reasoning + self.count_text(node.text)
            case list() | tuple():
                return sum(self._cost(item, rules) for item in node)
            case _:
                raise TypeError(f"Cannot count tokens for {type(node).__name__}")

    def cost_messages(self, messages: Sequence[Message], protocol: WireProtocol) -> int:
        """Return the cost of a flat layout."""
        return self.cost(list(messages), protocol)
