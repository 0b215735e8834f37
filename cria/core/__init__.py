"""Core types, errors and collaborator interfaces."""

from cria.core.errors import (
    CodecError,
    ConfigError,
    ConstructionError,
    CriaError,
    LoadError,
    OverBudgetError,
    ProviderError,
    ResolutionError,
)
from cria.core.interfaces import (
    KVStore,
    SearchResult,
    StoreEntry,
    Summarizer,
    SummarizerContext,
    TraceSink,
    VectorStore,
)
from cria.core.types import (
    Last,
    Message,
    Omit,
    Pin,
    PromptTree,
    Reasoning,
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
from cria.core.validation import validate_message, validate_tree

__all__ = [
    # Errors
    "CriaError",
    "ConstructionError",
    "ResolutionError",
    "CodecError",
    "OverBudgetError",
    "ConfigError",
    "LoadError",
    "ProviderError",
    # Interfaces
    "KVStore",
    "VectorStore",
    "StoreEntry",
    "SearchResult",
    "Summarizer",
    "SummarizerContext",
    "TraceSink",
    # Types
    "Role",
    "WireProtocol",
    "Text",
    "ToolCall",
    "ToolResult",
    "Reasoning",
    "Message",
    "TruncateFrom",
    "Omit",
    "Truncate",
    "Last",
    "Summary",
    "VectorSearch",
    "Pin",
    "Scope",
    "PromptTree",
    "message",
    "scope",
    # Validation
    "validate_message",
    "validate_tree",
]
