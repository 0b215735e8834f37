"""Tests for cria.provider.anthropic.AnthropicCodec."""

import pytest

from cria.core.errors import CodecError
from cria.core.types import Reasoning, Role, Text, ToolCall, ToolResult, message
from cria.provider.anthropic import AnthropicCodec


@pytest.fixture
def codec():
    return AnthropicCodec()


class TestRender:
    """Tests for rendering layouts to Anthropic payloads."""

    def test_system_extracted(self, codec):
        """System and developer text move to the system field."""
        payload = codec.render(
            [
                message(Role.SYSTEM, "rules"),
                message(Role.DEVELOPER, "more rules"),
                message(Role.USER, "hi"),
            ]
        )
        assert payload == {
            "system": "rules\n\nmore rules",
            "messages": [{"role": "user", "content": [{"type": "text", "text": "hi"}]}],
        }

    def test_no_system(self, codec):
        """The system field is omitted when there is no system text."""
        payload = codec.render([message(Role.USER, "hi")])
        assert "system" not in payload

    def test_tool_use_and_result(self, codec):
        """Tool calls become tool_use with object input; results join the user turn."""
        payload = codec.render(
            [
                message(Role.USER, "weather?"),
                message(Role.ASSISTANT, Text("Checking"), ToolCall("t1", "weather", '{"city": "Oslo"}')),
                message(Role.TOOL, ToolResult("t1", "weather", "rain")),
                message(Role.USER, "thanks"),
            ]
        )
        assert payload["messages"] == [
            {"role": "user", "content": [{"type": "text", "text": "weather?"}]},
            {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Checking"},
                    {"type": "tool_use", "id": "t1", "name": "weather", "input": {"city": "Oslo"}},
                ],
            },
            {
                "role": "user",
                "content": [
                    {"type": "tool_result", "tool_use_id": "t1", "content": "rain"},
                    {"type": "text", "text": "thanks"},
                ],
            },
        ]

    def test_parallel_results_share_message(self, codec):
        """Consecutive tool results form one user message."""
        payload = codec.render(
            [
                message(Role.ASSISTANT, ToolCall("a", "f", {}), ToolCall("b", "f", {})),
                message(Role.TOOL, ToolResult("a", "f", "1")),
                message(Role.TOOL, ToolResult("b", "f", "2")),
            ]
        )
        assert len(payload["messages"]) == 2
        assert [b["tool_use_id"] for b in payload["messages"][1]["content"]] == ["a", "b"]

    def test_structured_result_serialized(self, codec):
        """Non-string tool output is sent as JSON text."""
        payload = codec.render([message(Role.TOOL, ToolResult("a", "f", {"ok": True}))])
        assert payload["messages"][0]["content"][0]["content"] == '{"ok": true}'

    def test_thinking_with_signature(self, codec):
        """Reasoning becomes a thinking block carrying its signature."""
        payload = codec.render([message(Role.ASSISTANT, Reasoning("hmm", signature="sig"), Text("ok"))])
        assert payload["messages"][0]["content"][0] == {
            "type": "thinking",
            "thinking": "hmm",
            "signature": "sig",
        }

    def test_empty_tool_input(self, codec):
        """An empty argument string becomes an empty object."""
        payload = codec.render([message(Role.ASSISTANT, ToolCall("t1", "f", ""))])
        assert payload["messages"][0]["content"][0]["input"] == {}

    def test_invalid_tool_input(self, codec):
        """Argument strings that are not JSON fail with the fragment."""
        with pytest.raises(CodecError) as exc_info:
            codec.render([message(Role.ASSISTANT, ToolCall("t1", "f", "{oops"))])
        assert exc_info.value.fragment == "{oops"

    def test_empty_message_skipped(self, codec):
        """Messages without content blocks are skipped."""
        payload = codec.render([message(Role.USER), message(Role.USER, "hi")])
        assert len(payload["messages"]) == 1


class TestParse:
    """Tests for parsing Anthropic payloads."""

    def test_round_trip(self, codec):
        """Parsing and re-rendering reproduces the payload."""
        payload = {
            "system": "rules",
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": "weather?"}]},
                {
                    "role": "assistant",
                    "content": [
                        {"type": "thinking", "thinking": "look it up", "signature": "s"},
                        {"type": "tool_use", "id": "t1", "name": "weather", "input": {"city": "Oslo"}},
                    ],
                },
                {
                    "role": "user",
                    "content": [
                        {"type": "tool_result", "tool_use_id": "t1", "content": "rain"},
                        {"type": "text", "text": "and tomorrow?"},
                    ],
                },
            ],
        }
        assert codec.render(codec.parse(payload)) == payload

    def test_user_blocks_split(self, codec):
        """Tool results and text in one user message become separate messages."""
        layout = codec.parse(
            {
                "messages": [
                    {
                        "role": "assistant",
                        "content": [{"type": "tool_use", "id": "t1", "name": "f", "input": {}}],
                    },
                    {
                        "role": "user",
                        "content": [
                            {"type": "tool_result", "tool_use_id": "t1", "content": "r"},
                            {"type": "text", "text": "next"},
                        ],
                    },
                ]
            }
        )
        assert [m.role for m in layout] == [Role.ASSISTANT, Role.TOOL, Role.USER]
        assert layout[1].children == (ToolResult("t1", "f", "r"),)

    def test_string_content(self, codec):
        """Plain string content is one text part."""
        layout = codec.parse({"messages": [{"role": "user", "content": "hi"}]})
        assert layout[0].children == (Text("hi"),)

    def test_system_blocks(self, codec):
        """Block-form system prompts are joined into one system message."""
        layout = codec.parse(
            {
                "system": [
                    {"type": "text", "text": "a", "cache_control": {"type": "ephemeral"}},
                    {"type": "text", "text": "b"},
                ],
                "messages": [],
            }
        )
        assert layout == [message(Role.SYSTEM, "a\n\nb")]

    def test_unknown_role(self, codec):
        """Roles other than user and assistant are rejected."""
        with pytest.raises(CodecError):
            codec.parse({"messages": [{"role": "system", "content": "x"}]})

    def test_unknown_block(self, codec):
        """Unsupported block types are rejected with the block."""
        block = {"type": "image", "source": {}}
        with pytest.raises(CodecError) as exc_info:
            codec.parse({"messages": [{"role": "user", "content": [block]}]})
        assert exc_info.value.fragment == block

    def test_payload_must_be_object(self, codec):
        """A list payload is not an Anthropic payload."""
        with pytest.raises(CodecError):
            codec.parse([])
