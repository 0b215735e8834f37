"""Token accounting, resolution, fitting and render orchestration."""

from cria.context.accountant import DEFAULT_OVERHEADS, ProtocolOverhead, TokenAccountant
from cria.context.cache import derive_cache_key
from cria.context.fitter import FitEngine, FitResult
from cria.context.layout import build_layout
from cria.context.render import RenderedOutput, render
from cria.context.resolver import Resolver, format_search_results
from cria.context.summary import (
    SUMMARY_PREFIX,
    build_summarize_prompt,
    create_summary_message,
)
from cria.context.token_counter import (
    SimpleTokenCounter,
    TiktokenCounter,
    TokenCounter,
    get_token_counter,
)

__all__ = [
    # Accounting
    "DEFAULT_OVERHEADS",
    "ProtocolOverhead",
    "TokenAccountant",
    # Token counter
    "TokenCounter",
    "SimpleTokenCounter",
    "TiktokenCounter",
    "get_token_counter",
    # Engines
    "Resolver",
    "FitEngine",
    "FitResult",
    "build_layout",
    "format_search_results",
    # Summaries
    "SUMMARY_PREFIX",
    "build_summarize_prompt",
    "create_summary_message",
    # Cache
    "derive_cache_key",
    # Render
    "RenderedOutput",
    "render",
]
