"""Chat-style codec (OpenAI chat completions and compatible APIs).

One wire message per canonical message:

- system/developer/user: ``content`` is a string for a single text part, a
  list of ``{"type": "text"}`` parts for several.
- assistant: text joined into ``content`` (None when there is no text),
  tool calls in ``tool_calls`` with JSON string arguments.
- tool: ``{"role": "tool", "tool_call_id", "content"}``.

Reasoning parts have no chat representation and are dropped. Parsing
restores tool names on tool messages from the earlier assistant calls.
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


class OpenAIChatCodec(MessageCodec):
    """Codec for ``openai-chat`` payloads (a list of message dicts).

    Example:
        codec = OpenAIChatCodec()
        payload = codec.render(layout)
        # [{"role": "system", "content": "..."}, {"role": "user", ...}]
    """

    protocol = WireProtocol.OPENAI_CHAT

    def render(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        return [self._message_to_dict(msg) for msg in messages]

    def _message_to_dict(self, message: Message) -> dict[str, Any]:
        """Convert a Message to an OpenAI-format dict.

        Args:
            message: The Message to convert.

        Returns:
            Dict in OpenAI chat completion format.
        """
        if message.role == Role.TOOL:
            result_part = next(p for p in message.children if isinstance(p, ToolResult))
            return {
                "role": "tool",
                "tool_call_id": result_part.tool_call_id,
                "content": dump_arguments(result_part.output),
            }

        texts = [p.text for p in message.children if isinstance(p, Text)]

        if message.role != Role.ASSISTANT:
            content: Any
            if len(texts) == 1:
                content = texts[0]
            elif texts:
                content = [{"type": "text", "text": t} for t in texts]
            else:
                content = ""
            return {"role": message.role.value, "content": content}

        dropped = sum(1 for p in message.children if isinstance(p, Reasoning))
        if dropped:
            logger.debug("Dropping %d reasoning part(s): chat protocol has no reasoning field", dropped)

        result: dict[str, Any] = {
            "role": "assistant",
            "content": "".join(texts) if texts else None,
        }

        tool_calls = [p for p in message.children if isinstance(p, ToolCall)]
        if tool_calls:
            result["tool_calls"] = [
                {
                    "id": tc.tool_call_id,
                    "type": "function",
                    "function": {
                        "name": tc.tool_name,
                        "arguments": dump_arguments(tc.input),
                    },
                }
                for tc in tool_calls
            ]

        return result

    def parse(self, payload: Any) -> list[Message]:
        items = self._require_list(payload, "chat messages")
        tool_names: dict[str, str] = {}
        messages: list[Message] = []

        for raw in items:
            item = self._require_dict(raw, "chat message")
            role = self._parse_role(item.get("role"), item)

            if role == Role.TOOL:
                call_id = self._require_str(item, "tool_call_id")
                messages.append(
                    Message(
                        Role.TOOL,
                        (ToolResult(call_id, tool_names.get(call_id, ""), item.get("content", "")),),
                    )
                )
                continue

            parts: list[Part] = list(self._parse_content(item.get("content"), item))

            if role == Role.ASSISTANT:
                for call in self._parse_tool_calls(item.get("tool_calls"), item):
                    tool_names[call.tool_call_id] = call.tool_name
                    parts.append(call)
            elif "tool_calls" in item:
                raise CodecError(f"tool_calls on a {role.value} message", item)

            messages.append(Message(role, tuple(parts)))

        return messages

    def _parse_content(self, content: Any, item: dict[str, Any]) -> list[Text]:
        if content is None:
            return []
        if isinstance(content, str):
            return [Text(content)]
        if isinstance(content, list):
            texts = []
            for block in content:
                if not isinstance(block, dict) or block.get("type") != "text":
                    raise CodecError("Unsupported content part", block)
                texts.append(Text(self._require_str(block, "text")))
            return texts
        raise CodecError("Message content must be a string or list", item)

    def _parse_tool_calls(self, tool_calls: Any, item: dict[str, Any]) -> list[ToolCall]:
        """Parse tool calls from an assistant message.

        Arguments stay JSON strings; they are opaque to the engine.
        """
        if tool_calls is None:
            return []
        if not isinstance(tool_calls, list):
            raise CodecError("tool_calls must be a list", item)

        result: list[ToolCall] = []
        for tc in tool_calls:
            tc = self._require_dict(tc, "tool call")
            func = self._require_dict(tc.get("function"), "tool call function")
            result.append(
                ToolCall(
                    tool_call_id=self._require_str(tc, "id"),
                    tool_name=self._require_str(func, "name"),
                    input=func.get("arguments", ""),
                )
            )
        return result
