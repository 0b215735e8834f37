"""Render orchestration: resolve, fit, encode, pin.

``render()`` is the single entry point callers use:

1. Resolve dynamic scopes (async, may call stores and summarizers).
2. Fit the resolved tree to the budget (sync). If fitting reaches a
   Summary scope whose summary was not prepared up front, that summary is
   produced and fitting starts over on the same resolved tree.
3. Flatten the fitted tree and encode it with the protocol's codec.
4. Attach the pin cache key and provider cache hints when the pinned scope
   survived fitting.

Trace events go to the optional sink along the way; they never change the
outcome.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from cria.config.schema import RenderConfig
from cria.context.accountant import ProtocolOverhead, TokenAccountant
from cria.context.cache import apply_cache_hints, find_pin, pin_cache_key
from cria.context.fitter import FitEngine
from cria.context.layout import build_layout
from cria.context.resolver import Resolver
from cria.context.token_counter import get_token_counter
from cria.core.errors import CriaError, OverBudgetError, ResolutionError
from cria.core.interfaces import Summarizer, TraceSink
from cria.core.types import Message, PromptTree, WireProtocol
from cria.provider.registry import get_codec
from cria.session.events import RenderCompleted, RenderFailed, RenderStarted, emit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedOutput:
    """Result of a render.

    Attributes:
        protocol: Protocol the payload was encoded for.
        payload: Wire payload. A list of messages/items for OpenAI
            protocols, a ``{"system", "messages"}`` dict for Anthropic.
        layout: The fitted canonical layout the payload was encoded from.
        total_tokens: Accounted cost of the fitted tree.
        budget: Budget the tree was fitted against, None for unlimited.
        over_budget_by: Tokens still over budget, 0 when the tree fits.
        iterations: Number of fit steps applied.
        cache_key: Provider cache key from the tree's pin, if it survived.
    """

    protocol: WireProtocol
    payload: Any
    layout: tuple[Message, ...]
    total_tokens: int
    budget: int | None
    over_budget_by: int = 0
    iterations: int = 0
    cache_key: str | None = None

    @property
    def messages(self) -> list[Any]:
        """The wire message (or item) list."""
        if self.protocol == WireProtocol.ANTHROPIC:
            return self.payload["messages"]
        return self.payload

    @property
    def system(self) -> Any:
        """Extracted system field for Anthropic, None otherwise."""
        if self.protocol == WireProtocol.ANTHROPIC:
            return self.payload.get("system")
        return None

    @property
    def fits(self) -> bool:
        return self.over_budget_by == 0

    def request_options(self) -> dict[str, Any]:
        """Extra request parameters for provider-side prompt caching.

        OpenAI protocols take the cache key as ``prompt_cache_key``.
        Anthropic carries its hints inside the payload, so this is empty.
        """
        if self.cache_key is None or self.protocol == WireProtocol.ANTHROPIC:
            return {}
        return {"prompt_cache_key": self.cache_key}

    def raise_for_budget(self) -> None:
        """Raise OverBudgetError if the output exceeds its budget."""
        if self.over_budget_by and self.budget is not None:
            raise OverBudgetError(self.over_budget_by, self.budget)


def configured_overheads(config: RenderConfig) -> dict[WireProtocol, ProtocolOverhead]:
    """Overhead overrides from config. The chat protocol never replays reasoning."""
    return {
        protocol: ProtocolOverhead(
            per_message=o.per_message,
            per_tool_call=o.per_tool_call,
            per_tool_result=o.per_tool_result,
            per_reasoning=o.per_reasoning,
            replays_reasoning=protocol != WireProtocol.OPENAI_CHAT,
        )
        for protocol, o in config.overheads.items()
    }


def build_accountant(tree: PromptTree, config: RenderConfig) -> TokenAccountant:
    """Accountant for a tree: the tree's counter wins over the configured tokenizer."""
    counter = tree.counter or get_token_counter(
        use_tiktoken=config.tokenizer == "tiktoken", encoding_name=config.encoding
    )
    return TokenAccountant(counter, configured_overheads(config))


async def render(
    tree: PromptTree,
    *,
    config: RenderConfig | None = None,
    summarizer: Summarizer | None = None,
    sink: TraceSink | None = None,
    accountant: TokenAccountant | None = None,
    strict: bool = False,
) -> RenderedOutput:
    """Resolve, fit and encode a prompt tree.

    Args:
        tree: The prompt tree. Never mutated.
        config: Render defaults. Tree metadata takes precedence.
        summarizer: Fallback for Summary scopes without their own summarizer.
        sink: Optional trace sink.
        accountant: Token accountant to use instead of one built from the
            tree counter and config.
        strict: Raise OverBudgetError instead of returning an over-budget
            output.

    Returns:
        RenderedOutput with the payload and accounting.

    Raises:
        ResolutionError: A store, search or summarizer call failed.
        CodecError: The fitted layout cannot be encoded for the protocol.
        OverBudgetError: Only with ``strict=True``.
    """
    config = config or RenderConfig()
    protocol = WireProtocol(tree.protocol or config.protocol)
    budget = tree.budget if tree.budget is not None else config.budget
    model = tree.model or config.model
    accountant = accountant or build_accountant(tree, config)

    started = time.perf_counter()
    emit(sink, RenderStarted(protocol=protocol.value, budget=budget))

    try:
        resolver = Resolver(
            accountant,
            protocol,
            summarizer=summarizer,
            timeout=config.resolution_timeout,
            sink=sink,
        )
        engine = FitEngine(accountant, protocol, max_iterations=config.max_fit_iterations)

        resolved = await resolver.resolve(tree.root, budget)
        result = engine.fit(resolved, budget)

        summarized: set[str] = set()
        while result.pending_summary is not None:
            scope_id = result.pending_summary
            if scope_id in summarized:
                raise ResolutionError("Summary was prepared but fitting still needs it", scope_id)
            summarized.add(scope_id)
            logger.debug("Preparing deferred summary for scope %r", scope_id)
            resolved = await resolver.summarize_scope(resolved, scope_id)
            result = engine.fit(resolved, budget)

        for step in result.steps:
            emit(sink, step)

        layout = build_layout(result.root)
        payload = get_codec(protocol).render(layout)

        cache_key = None
        pinned = find_pin(result.root)
        if pinned is not None:
            cache_key = pin_cache_key(pinned, protocol, model)
            payload = apply_cache_hints(payload, protocol, pinned.pin)
            logger.debug(
                "Pinned scope %r kept after fitting, cache key %s", pinned.scope_id, cache_key
            )
    except CriaError as e:
        emit(sink, RenderFailed(error=str(e), scope_id=e.scope_id))
        raise

    output = RenderedOutput(
        protocol=protocol,
        payload=payload,
        layout=tuple(layout),
        total_tokens=result.total_tokens,
        budget=budget,
        over_budget_by=result.over_budget_by,
        iterations=result.iterations,
        cache_key=cache_key,
    )

    duration_ms = (time.perf_counter() - started) * 1000
    emit(
        sink,
        RenderCompleted(
            protocol=protocol.value,
            before=tuple(build_layout(resolved)),
            after=output.layout,
            total_tokens=output.total_tokens,
            budget=budget,
            over_budget_by=output.over_budget_by,
            iterations=output.iterations,
            duration_ms=duration_ms,
        ),
    )

    if output.over_budget_by:
        logger.debug(
            "Render over budget by %d tokens after %d fit step(s)",
            output.over_budget_by,
            output.iterations,
        )
        if strict:
            output.raise_for_budget()

    return output
