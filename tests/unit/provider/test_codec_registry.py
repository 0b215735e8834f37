"""Tests for cria.provider.registry."""

import pytest

from cria.core.errors import ConfigError
from cria.core.types import WireProtocol
from cria.provider.anthropic import AnthropicCodec
from cria.provider.openai_compat import OpenAIChatCodec
from cria.provider.openai_responses import OpenAIResponsesCodec
from cria.provider.registry import get_codec


class TestGetCodec:
    """Tests for get_codec()."""

    @pytest.mark.parametrize(
        "protocol,codec_type",
        [
            ("openai-chat", OpenAIChatCodec),
            ("openai-responses", OpenAIResponsesCodec),
            ("anthropic", AnthropicCodec),
        ],
    )
    def test_lookup(self, protocol, codec_type):
        """Each protocol maps to its codec."""
        codec = get_codec(protocol)
        assert isinstance(codec, codec_type)
        assert codec.protocol == WireProtocol(protocol)

    def test_shared_instance(self):
        """Codecs are created once per protocol."""
        assert get_codec(WireProtocol.ANTHROPIC) is get_codec("anthropic")

    def test_unknown_protocol(self):
        """Unknown protocols raise ConfigError listing the supported ones."""
        with pytest.raises(ConfigError, match="openai-chat"):
            get_codec("gemini")
