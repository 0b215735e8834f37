"""System-extracting codec (Anthropic Messages API).

This protocol differs from the OpenAI formats:

- System and developer content moves to a top-level ``system`` field.
- Messages are content blocks: text, thinking, tool_use.
- Tool results are tool_result blocks inside user messages. Roles must
  alternate, so consecutive user-side messages (user text, tool results)
  share one wire user message.
- Tool inputs are JSON objects, not strings.
"""

from __future__ import annotations

import json
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
from cria.provider.base import MessageCodec

logger = logging.getLogger(__name__)

SYSTEM_SEPARATOR = "\n\n"


class AnthropicCodec(MessageCodec):
    """Codec for ``anthropic`` payloads: ``{"system": ..., "messages": [...]}``.

    ``system`` is omitted when the layout has no system or developer text.
    Empty messages are skipped, since the API rejects empty content.

    Example:
        payload = AnthropicCodec().render(layout)
        body = {"model": model, "max_tokens": 1024, **payload}
    """

    protocol = WireProtocol.ANTHROPIC

    def render(self, messages: Sequence[Message]) -> dict[str, Any]:
        system_parts: list[str] = []
        converted: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role in (Role.SYSTEM, Role.DEVELOPER):
                text = msg.text
                if text:
                    system_parts.append(text)
                continue

            blocks = self._blocks_for(msg)
            if not blocks:
                logger.debug("Skipping empty %s message", msg.role.value)
                continue

            if msg.role in (Role.USER, Role.TOOL):
                if converted and converted[-1]["role"] == "user":
                    converted[-1]["content"].extend(blocks)
                else:
                    converted.append({"role": "user", "content": blocks})
            else:
                converted.append({"role": "assistant", "content": blocks})

        payload: dict[str, Any] = {}
        if system_parts:
            payload["system"] = SYSTEM_SEPARATOR.join(system_parts)
        payload["messages"] = converted
        return payload

    def _blocks_for(self, msg: Message) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        for part in msg.children:
            match part:
                case Text():
                    blocks.append({"type": "text", "text": part.text})
                case Reasoning():
                    block: dict[str, Any] = {"type": "thinking", "thinking": part.text}
                    if part.signature is not None:
                        block["signature"] = part.signature
                    blocks.append(block)
                case ToolCall():
                    blocks.append(
                        {
                            "type": "tool_use",
                            "id": part.tool_call_id,
                            "name": part.tool_name,
                            "input": self._tool_input(part),
                        }
                    )
                case ToolResult():
                    output = part.output
                    if not isinstance(output, (str, list)):
                        output = json.dumps(output)
                    blocks.append(
                        {"type": "tool_result", "tool_use_id": part.tool_call_id, "content": output}
                    )
        return blocks

    def _tool_input(self, call: ToolCall) -> Any:
        """Anthropic wants the input object; decode JSON string inputs."""
        if not isinstance(call.input, str):
            return call.input
        if not call.input:
            return {}
        try:
            return json.loads(call.input)
        except json.JSONDecodeError as e:
            raise CodecError(
                f"Tool call {call.tool_call_id!r} input is not valid JSON", call.input
            ) from e

    def parse(self, payload: Any) -> list[Message]:
        payload = self._require_dict(payload, "Anthropic payload")
        messages: list[Message] = []

        system = payload.get("system")
        if system is not None:
            text = self._parse_system(system)
            if text:
                messages.append(Message(Role.SYSTEM, (Text(text),)))

        tool_names: dict[str, str] = {}
        for raw in self._require_list(payload.get("messages", []), "messages"):
            item = self._require_dict(raw, "message")
            role = item.get("role")
            content = item.get("content")
            if isinstance(content, str):
                content = [{"type": "text", "text": content}]
            content = self._require_list(content, "content blocks")

            if role == "assistant":
                parts = [self._parse_assistant_block(b, tool_names) for b in content]
                messages.append(Message(Role.ASSISTANT, tuple(parts)))
            elif role == "user":
                messages.extend(self._parse_user_blocks(content, tool_names))
            else:
                raise CodecError(f"Unknown role {role!r}", item)

        return messages

    def _parse_system(self, system: Any) -> str:
        if isinstance(system, str):
            return system
        if isinstance(system, list):
            texts = []
            for block in system:
                if not isinstance(block, dict) or block.get("type") != "text":
                    raise CodecError("System blocks must be text", block)
                texts.append(self._require_str(block, "text"))
            return SYSTEM_SEPARATOR.join(texts)
        raise CodecError("System must be a string or list of text blocks", system)

    def _parse_assistant_block(self, raw: Any, tool_names: dict[str, str]) -> Part:
        block = self._require_dict(raw, "content block")
        match block.get("type"):
            case "text":
                return Text(self._require_str(block, "text"))
            case "thinking":
                signature = block.get("signature")
                return Reasoning(
                    self._require_str(block, "thinking"),
                    signature if isinstance(signature, str) else None,
                )
            case "tool_use":
                call = ToolCall(
                    tool_call_id=self._require_str(block, "id"),
                    tool_name=self._require_str(block, "name"),
                    input=block.get("input", {}),
                )
                tool_names[call.tool_call_id] = call.tool_name
                return call
            case other:
                raise CodecError(f"Unsupported assistant block type {other!r}", block)

    def _parse_user_blocks(
        self, content: list[Any], tool_names: dict[str, str]
    ) -> list[Message]:
        """Split one wire user message into user and tool messages.

        Each tool_result becomes its own tool message; runs of text blocks
        between them form user messages.
        """
        result: list[Message] = []
        texts: list[Part] = []

        def flush() -> None:
            if texts:
                result.append(Message(Role.USER, tuple(texts)))
                texts.clear()

        for raw in content:
            block = self._require_dict(raw, "content block")
            match block.get("type"):
                case "text":
                    texts.append(Text(self._require_str(block, "text")))
                case "tool_result":
                    flush()
                    call_id = self._require_str(block, "tool_use_id")
                    result.append(
                        Message(
                            Role.TOOL,
                            (ToolResult(call_id, tool_names.get(call_id, ""), block.get("content", "")),),
                        )
                    )
                case other:
                    raise CodecError(f"Unsupported user block type {other!r}", block)
        flush()
        return result
