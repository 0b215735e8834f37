"""Structured-items codec (OpenAI Responses API input items).

Every part becomes its own item, in declaration order:

- adjacent text parts of one message -> one ``message`` item
- reasoning -> ``reasoning`` item with a ``summary_text`` summary, or an
  empty summary list when the reasoning has no text (encrypted-only items)
- tool call -> ``function_call`` item
- tool message -> ``function_call_output`` item

Reasoning item ids are not preserved. They are regenerated as
``reasoning_<n>`` by position, and several summary entries are joined into
one, so ``render(parse(x))`` matches ``x`` except for those ids and joins.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from cria.core.errors import CodecError
from cria.core.types import (
    Message,
    Part,
    Reasoning,
    Role,
    Text,
    ToolCall,
    ToolResult,
    WireProtocol,
)
from cria.provider.base import MessageCodec, dump_arguments

logger = logging.getLogger(__name__)

REASONING_ID_PREFIX = "reasoning_"

# Content part types accepted inside a message item.
_TEXT_CONTENT_TYPES = frozenset({"input_text", "output_text", "text"})


class OpenAIResponsesCodec(MessageCodec):
    """Codec for ``openai-responses`` payloads (a list of typed items).

    Example:
        items = OpenAIResponsesCodec().render(layout)
        # [{"type": "message", "role": "assistant", "content": "Let me check"},
        #  {"type": "function_call", "call_id": "c1", "name": "search", ...}]
    """

    protocol = WireProtocol.OPENAI_RESPONSES

    def render(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        reasoning_index = 0

        for msg in messages:
            if msg.role == Role.TOOL:
                for part in msg.children:
                    if isinstance(part, ToolResult):
                        items.append(
                            {
                                "type": "function_call_output",
                                "call_id": part.tool_call_id,
                                "output": dump_arguments(part.output),
                            }
                        )
                continue

            if not msg.children:
                items.append({"type": "message", "role": msg.role.value, "content": ""})
                continue

            pending_text: list[str] = []

            def flush() -> None:
                if pending_text:
                    items.append(
                        {"type": "message", "role": msg.role.value, "content": "".join(pending_text)}
                    )
                    pending_text.clear()

            for part in msg.children:
                match part:
                    case Text():
                        pending_text.append(part.text)
                    case Reasoning():
                        flush()
                        item: dict[str, Any] = {
                            "id": f"{REASONING_ID_PREFIX}{reasoning_index}",
                            "type": "reasoning",
                            "summary": (
                                [{"type": "summary_text", "text": part.text}] if part.text else []
                            ),
                        }
                        if part.signature is not None:
                            item["encrypted_content"] = part.signature
                        items.append(item)
                        reasoning_index += 1
                    case ToolCall():
                        flush()
                        items.append(
                            {
                                "type": "function_call",
                                "call_id": part.tool_call_id,
                                "name": part.tool_name,
                                "arguments": dump_arguments(part.input),
                            }
                        )
                    case ToolResult():
                        raise CodecError("Tool result outside a tool message", part)
            flush()

        return items

    def parse(self, payload: Any) -> list[Message]:
        """Group items back into messages.

        Consecutive assistant-side items (assistant text, reasoning, function
        calls) form one assistant message. A second assistant text item right
        after assistant text starts a new message, since adjacent text within
        one message would have been coalesced.
        """
        items = self._require_list(payload, "response items")
        messages: list[Message] = []
        tool_names: dict[str, str] = {}

        # Parts of the assistant message being assembled, if any.
        assistant: list[Part] | None = None

        def close_assistant() -> None:
            nonlocal assistant
            if assistant is not None:
                messages.append(Message(Role.ASSISTANT, tuple(assistant)))
                assistant = None

        for raw in items:
            item = self._require_dict(raw, "response item")
            item_type = item.get("type")

            match item_type:
                case "message":
                    role = self._parse_role(item.get("role"), item)
                    if role == Role.TOOL:
                        raise CodecError("Tool role is not valid on a message item", item)
                    text = self._parse_content(item.get("content"), item)
                    if role == Role.ASSISTANT:
                        if assistant is not None and assistant and isinstance(assistant[-1], Text):
                            close_assistant()
                        if assistant is None:
                            assistant = []
                        assistant.append(Text(text))
                    else:
                        close_assistant()
                        messages.append(Message(role, (Text(text),)))
                case "reasoning":
                    if assistant is None:
                        assistant = []
                    assistant.append(self._parse_reasoning(item))
                case "function_call":
                    if assistant is None:
                        assistant = []
                    call = ToolCall(
                        tool_call_id=self._require_str(item, "call_id"),
                        tool_name=self._require_str(item, "name"),
                        input=item.get("arguments", ""),
                    )
                    tool_names[call.tool_call_id] = call.tool_name
                    assistant.append(call)
                case "function_call_output":
                    close_assistant()
                    call_id = self._require_str(item, "call_id")
                    messages.append(
                        Message(
                            Role.TOOL,
                            (ToolResult(call_id, tool_names.get(call_id, ""), item.get("output", "")),),
                        )
                    )
                case _:
                    raise CodecError(f"Unknown item type {item_type!r}", item)

        close_assistant()
        return messages

    def _parse_content(self, content: Any, item: dict[str, Any]) -> str:
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            texts = []
            for block in content:
                if not isinstance(block, dict) or block.get("type") not in _TEXT_CONTENT_TYPES:
                    raise CodecError("Unsupported message content part", block)
                texts.append(self._require_str(block, "text"))
            return "".join(texts)
        raise CodecError("Message content must be a string or list", item)

    def _parse_reasoning(self, item: dict[str, Any]) -> Reasoning:
        summary = item.get("summary", [])
        if not isinstance(summary, list):
            raise CodecError("Reasoning summary must be a list", item)
        texts = []
        for entry in summary:
            if not isinstance(entry, dict) or not isinstance(entry.get("text"), str):
                raise CodecError("Malformed reasoning summary entry", entry)
            texts.append(entry["text"])
        signature = item.get("encrypted_content")
        return Reasoning("".join(texts), signature if isinstance(signature, str) else None)
