"""The Resolution Engine: materialize dynamic scopes before fitting.

Resolution runs in two passes over the caller's tree and returns a new tree:

1. Materialize: VectorSearch scopes query their store and are replaced by a
   results message; Last scopes keep their final n children. Sibling scopes
   resolve concurrently, and children keep declaration order whatever the
   completion order.
2. Prepare summaries: for each Summary scope, compare the cost of its raw
   content with its fair share of the budget. Only when the raw content does
   not fit is the summary cache consulted, and only on a miss or stale entry
   is the summarizer called.

Any store, search or summarizer failure (including a timeout) aborts the
render with ResolutionError naming the scope; sibling calls still in flight
are cancelled first, so nothing keeps writing to stores after the error.
Resolving an already resolved tree is a no-op.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from typing import Any

from cria.context.accountant import TokenAccountant
from cria.context.cache import load_summary, source_hash, store_summary
from cria.context.fitter import Path
from cria.context.layout import build_layout
from cria.core.errors import ResolutionError
from cria.core.interfaces import SearchResult, Summarizer, SummarizerContext, TraceSink
from cria.core.types import (
    REDUCIBLE_STRATEGIES,
    Last,
    Message,
    Scope,
    Summary,
    Text,
    VectorSearch,
    WireProtocol,
)
from cria.session.events import SearchResolved, SummaryResolved, emit

logger = logging.getLogger(__name__)

NO_RESULTS_TEXT = "Vector search returned no results."


def format_search_results(results: list[SearchResult]) -> str:
    """Default formatter: numbered results with their scores.

    Returns a placeholder when nothing matched so the prompt still reads
    sensibly.
    """
    if not results:
        return NO_RESULTS_TEXT

    blocks = []
    for index, result in enumerate(results, start=1):
        data = result.value if isinstance(result.value, str) else json.dumps(result.value, indent=2)
        blocks.append(f"[{index}] (score: {result.score:.3f})\n{data}")
    return "\n\n".join(blocks)


def derive_query(node: Scope, strategy: VectorSearch) -> str | None:
    """Query text for a VectorSearch scope.

    The scope's own message text wins over the strategy's ``query``.
    """
    child_text = "".join(
        child.text for child in node.children if isinstance(child, Message)
    ).strip()
    if child_text:
        return child_text
    if strategy.query and strategy.query.strip():
        return strategy.query.strip()
    return None


def node_at(root: Scope, path: Path) -> Scope:
    node = root
    for index in path:
        child = node.children[index]
        assert isinstance(child, Scope)
        node = child
    return node


def update_at(root: Scope, path: Path, fn: Callable[[Scope], Scope]) -> Scope:
    """Return a copy of ``root`` with ``fn`` applied to the scope at ``path``."""
    if not path:
        return fn(root)
    index, rest = path[0], path[1:]
    child = root.children[index]
    assert isinstance(child, Scope)
    children = list(root.children)
    children[index] = update_at(child, rest, fn)
    return replace(root, children=tuple(children))


async def run_concurrently(coros: Sequence[Awaitable[Any]]) -> list[Any]:
    """Await coroutines concurrently and return their results in order.

    The first failure cancels every sibling still running, and all of them
    have finished before the failure is re-raised. Cancelling the caller
    cancels them too.
    """
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    if not tasks:
        return []

    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.wait(tasks)

    for task in tasks:
        if not task.cancelled() and task.exception() is not None:
            raise task.exception()
    return [task.result() for task in tasks]


class Resolver:
    """Materializes a tree so the Fit Engine can run without I/O.

    Example:
        resolver = Resolver(accountant, WireProtocol.ANTHROPIC, summarizer=my_summarizer)
        resolved = await resolver.resolve(tree.root, budget=2000)
    """

    def __init__(
        self,
        accountant: TokenAccountant,
        protocol: WireProtocol,
        summarizer: Summarizer | None = None,
        timeout: float | None = None,
        sink: TraceSink | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            accountant: Token accountant used for fair-share estimates.
            protocol: Protocol whose accounting rules apply.
            summarizer: Fallback summarizer for Summary scopes without one.
            timeout: Per-call timeout in seconds for store, search and
                summarizer calls. None waits indefinitely.
            sink: Optional trace sink.
        """
        self.accountant = accountant
        self.protocol = WireProtocol(protocol)
        self._summarizer = summarizer
        self._timeout = timeout
        self._sink = sink

    def cost(self, node: Any) -> int:
        return self.accountant.cost(node, self.protocol)

    async def resolve(self, root: Scope, budget: int | None) -> Scope:
        """Return a fully materialized copy of ``root``.

        Args:
            root: Tree root as built by the caller.
            budget: Token budget used to decide which summaries are needed.
                None skips summary preparation entirely.

        Raises:
            ResolutionError: If any external call fails or times out.
        """
        materialized = await self._materialize(root)
        if budget is None:
            return materialized
        return await self._prepare_summaries(materialized, budget)

    async def summarize_scope(self, root: Scope, scope_id: str) -> Scope:
        """Prepare the summary for one scope on demand.

        Used when fitting reaches a Summary scope whose fair-share estimate
        did not call for a summary up front.

        Raises:
            ResolutionError: If the scope is missing or summarization fails.
        """
        for path, node in self._summary_scopes(root):
            if node.id == scope_id:
                text = await self._prepare_summary(node)
                return update_at(root, path, lambda s: replace(s, summary=text))
        raise ResolutionError("No unsummarized Summary scope with this id", scope_id)

    # === External calls ===

    async def _call(
        self,
        fn: Callable[[], Any | Awaitable[Any]],
        scope_id: str | None,
        action: str,
    ) -> Any:
        """Run a sync or async external call under the resolver's policy.

        Failures and timeouts become ResolutionError; cancellation propagates.
        """
        try:
            result = fn()
            if inspect.isawaitable(result):
                if self._timeout is not None:
                    result = await asyncio.wait_for(result, self._timeout)
                else:
                    result = await result
            return result
        except ResolutionError:
            raise
        except asyncio.TimeoutError as e:
            raise ResolutionError(f"{action} timed out after {self._timeout}s", scope_id) from e
        except Exception as e:
            raise ResolutionError(f"{action} failed: {e}", scope_id) from e

    # === Pass 1: materialize ===

    async def _materialize(self, node: Scope) -> Scope:
        if node.materialized:
            return node

        strategy = node.strategy
        if isinstance(strategy, VectorSearch):
            return await self._search(node, strategy)

        scope_children = [c for c in node.children if isinstance(c, Scope)]
        resolved = await run_concurrently([self._materialize(c) for c in scope_children])
        resolved_iter = iter(resolved)
        children = tuple(
            next(resolved_iter) if isinstance(c, Scope) else c for c in node.children
        )

        if isinstance(strategy, Last):
            kept = children[-strategy.n:] if strategy.n else ()
            return replace(node, children=kept, materialized=True)

        if all(new is old for new, old in zip(children, node.children)):
            return node
        return replace(node, children=children)

    async def _search(self, node: Scope, strategy: VectorSearch) -> Scope:
        query = derive_query(node, strategy)
        if query is None:
            raise ResolutionError("VectorSearch has no query", node.id)

        results = await self._call(
            lambda: strategy.store.search(
                query, limit=strategy.limit, threshold=strategy.threshold
            ),
            node.id,
            "Vector search",
        )
        if results is None:
            results = []
        matches: list[SearchResult] = [
            r for r in results if strategy.threshold is None or r.score >= strategy.threshold
        ][: strategy.limit]

        formatter = strategy.formatter or format_search_results
        content = formatter(matches)
        logger.debug(
            "Vector search for scope %r returned %d result(s)", node.id, len(matches)
        )
        emit(
            self._sink,
            SearchResolved(scope_id=node.id, query=query, result_count=len(matches)),
        )
        return replace(
            node,
            children=(Message(strategy.role, (Text(content),)),),
            materialized=True,
        )

    # === Pass 2: summaries ===

    def _summary_scopes(self, root: Scope) -> list[tuple[Path, Scope]]:
        found: list[tuple[Path, Scope]] = []

        def walk(node: Scope, path: Path) -> None:
            if isinstance(node.strategy, Summary) and node.summary is None:
                found.append((path, node))
            for index, child in enumerate(node.children):
                if isinstance(child, Scope):
                    walk(child, path + (index,))

        walk(root, ())
        return found

    def fair_share(self, root: Scope, path: Path, budget: int) -> int:
        """Budget left for the scope at ``path`` after longer-lived content.

        Content in reducible scopes that are less important than the target
        (higher priority number) is reduced first, so it does not count
        against the target's share.
        """
        target = node_at(root, path)
        discount = 0

        def walk(node: Scope, node_path: Path) -> None:
            nonlocal discount
            if node_path == path:
                return
            is_ancestor = path[: len(node_path)] == node_path
            if (
                not is_ancestor
                and isinstance(node.strategy, REDUCIBLE_STRATEGIES)
                and node.priority > target.priority
            ):
                discount += self.cost(node)
                return
            for index, child in enumerate(node.children):
                if isinstance(child, Scope):
                    walk(child, node_path + (index,))

        walk(root, ())
        return budget - (self.cost(root) - self.cost(target) - discount)

    async def _prepare_summaries(self, root: Scope, budget: int) -> Scope:
        needed: list[tuple[Path, Scope]] = []
        for path, node in self._summary_scopes(root):
            raw_cost = self.cost(node)
            share = self.fair_share(root, path, budget)
            if raw_cost > share:
                logger.debug(
                    "Scope %r needs a summary: raw %d tokens, share %d", node.id, raw_cost, share
                )
                needed.append((path, node))

        if not needed:
            return root

        texts = await run_concurrently([self._prepare_summary(node) for _, node in needed])
        for (path, _), text in zip(needed, texts):
            root = update_at(root, path, lambda s, text=text: replace(s, summary=text))
        return root

    async def _prepare_summary(self, node: Scope) -> str:
        strategy = node.strategy
        assert isinstance(strategy, Summary)
        scope_id = node.id
        assert scope_id is not None

        messages: Sequence[Message] = build_layout(node)
        digest = source_hash(messages)

        cached = await self._call(
            lambda: load_summary(strategy.store, scope_id, digest, strategy.max_age_seconds),
            scope_id,
            "Summary cache lookup",
        )
        if cached.fresh and cached.content is not None:
            emit(self._sink, SummaryResolved(scope_id=scope_id, cached=True))
            return cached.content

        summarize = strategy.summarize or self._summarizer
        if summarize is None:
            raise ResolutionError(
                "Summary requires a summarize function on the strategy or a "
                "summarizer passed to render()",
                scope_id,
            )

        ctx = SummarizerContext(
            scope_id=scope_id,
            target=node,
            messages=tuple(messages),
            existing_summary=cached.content,
        )
        text = await self._call(lambda: summarize(ctx), scope_id, "Summarizer")
        if not isinstance(text, str):
            raise ResolutionError(
                f"Summarizer returned {type(text).__name__}, expected str", scope_id
            )

        await self._call(
            lambda: store_summary(strategy.store, scope_id, text, digest),
            scope_id,
            "Summary cache write",
        )
        emit(self._sink, SummaryResolved(scope_id=scope_id, cached=False))
        return text
