"""cria: prompt trees fitted to a token budget and encoded for LLM providers.

Example:
    from cria import PromptTree, Role, Truncate, WireProtocol, message, render, scope

    tree = PromptTree(
        scope(
            scope(message(Role.SYSTEM, "You are terse.")),
            scope(*history, priority=2, strategy=Truncate(), id="history"),
        ),
        protocol=WireProtocol.ANTHROPIC,
        budget=4000,
    )
    output = await render(tree)
"""

from cria.config import RenderConfig, load_config
from cria.context import RenderedOutput, TokenAccountant, render
from cria.core import (
    CodecError,
    ConfigError,
    ConstructionError,
    CriaError,
    Last,
    Message,
    Omit,
    OverBudgetError,
    Pin,
    PromptTree,
    Reasoning,
    ResolutionError,
    Role,
    Scope,
    Summary,
    Text,
    ToolCall,
    ToolResult,
    Truncate,
    TruncateFrom,
    VectorSearch,
    WireProtocol,
    message,
    scope,
)
from cria.provider import get_codec
from cria.store import InMemoryStore, InMemoryVectorStore

__version__ = "0.1.0"

__all__ = [
    "CodecError",
    "ConfigError",
    "ConstructionError",
    "CriaError",
    "InMemoryStore",
    "InMemoryVectorStore",
    "Last",
    "Message",
    "Omit",
    "OverBudgetError",
    "Pin",
    "PromptTree",
    "Reasoning",
    "RenderConfig",
    "RenderedOutput",
    "ResolutionError",
    "Role",
    "Scope",
    "Summary",
    "Text",
    "TokenAccountant",
    "ToolCall",
    "ToolResult",
    "Truncate",
    "TruncateFrom",
    "VectorSearch",
    "WireProtocol",
    "get_codec",
    "load_config",
    "message",
    "render",
    "scope",
]
