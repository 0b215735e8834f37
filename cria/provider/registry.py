"""Codec registry: protocol -> codec lookup.

Codecs are stateless, so one shared instance per protocol is created on
first access.

Example:
    from cria.provider.registry import get_codec

    codec = get_codec("anthropic")
    payload = codec.render(layout)
"""

from __future__ import annotations

from cria.core.errors import ConfigError
from cria.core.types import WireProtocol
from cria.provider.anthropic import AnthropicCodec
from cria.provider.base import MessageCodec
from cria.provider.openai_compat import OpenAIChatCodec
from cria.provider.openai_responses import OpenAIResponsesCodec

_CODEC_TYPES: dict[WireProtocol, type[MessageCodec]] = {
    WireProtocol.OPENAI_CHAT: OpenAIChatCodec,
    WireProtocol.OPENAI_RESPONSES: OpenAIResponsesCodec,
    WireProtocol.ANTHROPIC: AnthropicCodec,
}

_codecs: dict[WireProtocol, MessageCodec] = {}


def get_codec(protocol: WireProtocol | str) -> MessageCodec:
    """Return the codec for a protocol.

    Raises:
        ConfigError: If the protocol is unknown.
    """
    try:
        key = WireProtocol(protocol)
    except ValueError as e:
        supported = ", ".join(p.value for p in WireProtocol)
        raise ConfigError(f"Unknown protocol {protocol!r}. Supported: {supported}") from e

    codec = _codecs.get(key)
    if codec is None:
        codec = _CODEC_TYPES[key]()
        _codecs[key] = codec
    return codec
