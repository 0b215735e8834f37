"""Wire protocol codecs and the completion client.

Supported protocols:
- openai-chat: chat completions message list
- openai-responses: Responses API input items
- anthropic: Messages API system + messages
"""

from cria.provider.anthropic import AnthropicCodec
from cria.provider.base import MessageCodec
from cria.provider.client import CompletionClient
from cria.provider.openai_compat import OpenAIChatCodec
from cria.provider.openai_responses import OpenAIResponsesCodec
from cria.provider.registry import get_codec

__all__ = [
    "AnthropicCodec",
    "CompletionClient",
    "MessageCodec",
    "OpenAIChatCodec",
    "OpenAIResponsesCodec",
    "get_codec",
]
