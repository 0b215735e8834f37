"""Pydantic models for cria render configuration."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from cria.core.types import WireProtocol


class OverheadConfig(BaseModel):
    """Fixed token charges for one protocol, overriding the built-in table.

    Example in cria.json:
        "overheads": {
            "anthropic": {"per_message": 5, "per_tool_call": 10}
        }
    """

    model_config = ConfigDict(extra="forbid")

    per_message: int = Field(default=0, ge=0)
    """Tokens charged once per message."""

    per_tool_call: int = Field(default=0, ge=0)
    """Tokens charged per tool call on top of its name and input."""

    per_tool_result: int = Field(default=0, ge=0)
    """Tokens charged per tool result on top of its output."""

    per_reasoning: int = Field(default=0, ge=0)
    """Tokens charged per reasoning block on top of its text."""


class RenderConfig(BaseModel):
    """Defaults for render() calls.

    Values set on a PromptTree (protocol, budget, model, counter) take
    precedence over these.

    Example cria.json:
        {
            "protocol": "anthropic",
            "budget": 8000,
            "model": "claude-sonnet-4-20250514",
            "tokenizer": "tiktoken",
            "resolution_timeout": 30
        }
    """

    model_config = ConfigDict(extra="forbid")

    protocol: WireProtocol = WireProtocol.OPENAI_CHAT
    """Wire protocol used when the tree does not name one."""

    budget: int | None = Field(default=None, ge=0)
    """Token budget used when the tree does not set one. None disables fitting."""

    model: str = ""
    """Model identifier, part of provider cache keys."""

    tokenizer: Literal["simple", "tiktoken"] = "simple"
    """Token counter: character estimate or tiktoken."""

    encoding: str = "cl100k_base"
    """tiktoken encoding name when tokenizer is "tiktoken"."""

    overheads: dict[WireProtocol, OverheadConfig] = Field(default_factory=dict)
    """Per-protocol overrides of the accountant's overhead table."""

    resolution_timeout: float | None = Field(default=None, gt=0)
    """Timeout in seconds for each store, search or summarizer call."""

    max_fit_iterations: int = Field(default=1000, ge=1)
    """Upper bound on fit steps per render."""
