"""The Fit Engine: priority-driven reduction of a resolved tree to a budget.

Each iteration picks the single least important reducible scope (highest
priority number, first in document order on ties) and applies one step of
its strategy:

- Omit removes the scope and its subtree.
- Truncate removes whole children from one side, at least one, until the
  scope fits what the rest of the tree leaves it (or its own cap).
- Summary swaps the scope's content for its prepared summary.

Fitting stops as soon as the tree fits. When nothing reducible is left the
result reports the overage instead of raising; content in scopes without a
strategy is never touched.

Fitting is synchronous. If a Summary scope is chosen before its summary text
exists, the engine stops and names the scope so the caller can produce the
summary and fit again; decisions are deterministic, so the rerun replays the
same steps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from cria.context.accountant import TokenAccountant
from cria.context.summary import create_summary_message
from cria.core.types import (
    REDUCIBLE_STRATEGIES,
    Node,
    Omit,
    Scope,
    Summary,
    Truncate,
    TruncateFrom,
    WireProtocol,
)
from cria.session.events import FitIteration

logger = logging.getLogger(__name__)

Path = tuple[int, ...]

DEFAULT_MAX_ITERATIONS = 1000


@dataclass(frozen=True)
class FitResult:
    """Outcome of fitting a tree.

    Attributes:
        root: The fitted tree root. Identical to the input when no step ran.
        total_tokens: Cost of ``root``.
        budget: The budget fitted against, None for unlimited.
        iterations: Number of reduction steps applied.
        over_budget_by: Tokens over budget after exhausting every reducible
            scope, 0 on success.
        pending_summary: Id of a Summary scope that was selected but has no
            summary text yet. Fitting stopped early when this is set.
        steps: One FitIteration record per applied step, in order.
    """

    root: Scope
    total_tokens: int
    budget: int | None
    iterations: int = 0
    over_budget_by: int = 0
    pending_summary: str | None = None
    steps: tuple[FitIteration, ...] = ()

    @property
    def fits(self) -> bool:
        """True if the tree is within budget."""
        return self.budget is None or self.total_tokens <= self.budget


def has_reduction_potential(node: Scope) -> bool:
    """Return True if a Fit Engine step could still shrink ``node``."""
    strategy = node.strategy
    if isinstance(strategy, Omit):
        return True
    if isinstance(strategy, Truncate):
        return len(node.children) > 0
    if isinstance(strategy, Summary):
        return True
    return False


def find_candidates(root: Scope) -> list[tuple[Path, Scope]]:
    """Reducible scopes with remaining potential, in document order."""
    found: list[tuple[Path, Scope]] = []

    def walk(node: Scope, path: Path) -> None:
        if isinstance(node.strategy, REDUCIBLE_STRATEGIES) and has_reduction_potential(node):
            found.append((path, node))
        for index, child in enumerate(node.children):
            if isinstance(child, Scope):
                walk(child, path + (index,))

    walk(root, ())
    return found


def select_candidate(candidates: list[tuple[Path, Scope]]) -> tuple[Path, Scope] | None:
    """Pick the highest priority number; earliest in document order wins ties."""
    best: tuple[Path, Scope] | None = None
    for candidate in candidates:
        if best is None or candidate[1].priority > best[1].priority:
            best = candidate
    return best


def replace_at(root: Scope, path: Path, replacement: Scope | None) -> Scope | None:
    """Return a copy of ``root`` with the scope at ``path`` replaced.

    A None replacement removes the scope from its parent.
    """
    if not path:
        return replacement
    index, rest = path[0], path[1:]
    child = root.children[index]
    assert isinstance(child, Scope)
    new_child = replace_at(child, rest, replacement)
    children: list[Node] = list(root.children)
    if new_child is None:
        del children[index]
    else:
        children[index] = new_child
    return replace(root, children=tuple(children))


def _potential(root: Scope) -> int:
    total = 0
    for _, node in find_candidates(root):
        total += len(node.children) if isinstance(node.strategy, Truncate) else 1
    return total


class FitEngine:
    """Reduces a resolved tree until it fits a token budget.

    Example:
        engine = FitEngine(TokenAccountant(counter), WireProtocol.OPENAI_CHAT)
        result = engine.fit(resolved.root, budget=4000)
        if result.over_budget_by:
            ...
    """

    def __init__(
        self,
        accountant: TokenAccountant,
        protocol: WireProtocol,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        """Initialize the engine.

        Args:
            accountant: Token accountant for cost computation.
            protocol: Protocol whose accounting rules apply.
            max_iterations: Hard cap on reduction steps.
        """
        self.accountant = accountant
        self.protocol = WireProtocol(protocol)
        self.max_iterations = max_iterations

    def cost(self, node: Node | list[Node]) -> int:
        return self.accountant.cost(node, self.protocol)

    def fit(self, root: Scope, budget: int | None) -> FitResult:
        """Fit ``root`` into ``budget``.

        Args:
            root: Resolved tree root. Never mutated.
            budget: Token budget, None to skip fitting.

        Returns:
            FitResult with the fitted root, its cost and any overage.
        """
        total = self.cost(root)
        if budget is None or total <= budget:
            return FitResult(root=root, total_tokens=total, budget=budget)

        current: Scope = root
        bound = min(_potential(root), self.max_iterations)
        steps: list[FitIteration] = []

        while total > budget:
            candidate = select_candidate(find_candidates(current))
            if candidate is None:
                break
            if len(steps) >= bound:
                logger.warning(
                    "Fit stopped after %d iterations with %d tokens over budget",
                    len(steps),
                    total - budget,
                )
                break

            path, target = candidate
            if isinstance(target.strategy, Summary) and target.summary is None:
                logger.debug("Fit paused: summary for scope %r not prepared", target.id)
                return FitResult(
                    root=current,
                    total_tokens=total,
                    budget=budget,
                    iterations=len(steps),
                    pending_summary=target.id,
                    steps=tuple(steps),
                )

            strategy_name = type(target.strategy).__name__.lower()
            replacement = self._reduce(target, total, budget)
            next_root = replace_at(current, path, replacement)
            current = next_root if next_root is not None else Scope(priority=root.priority, id=root.id)
            next_total = self.cost(current)

            steps.append(
                FitIteration(
                    iteration=len(steps) + 1,
                    scope_id=target.id,
                    priority=target.priority,
                    strategy=strategy_name,
                    replacement=replacement,
                    tokens_before=total,
                    tokens_after=next_total,
                )
            )
            logger.debug(
                "Fit step %d: %s scope %r (priority %d) %d -> %d tokens",
                len(steps),
                strategy_name,
                target.id,
                target.priority,
                total,
                next_total,
            )
            total = next_total

        return FitResult(
            root=current,
            total_tokens=total,
            budget=budget,
            iterations=len(steps),
            over_budget_by=max(0, total - budget),
            steps=tuple(steps),
        )

    def _reduce(self, target: Scope, total: int, budget: int) -> Scope | None:
        strategy = target.strategy
        match strategy:
            case Omit():
                return None
            case Truncate():
                return self._truncate(target, strategy, total, budget)
            case Summary():
                assert target.summary is not None
                summary_msg = create_summary_message(target.summary, strategy.role)
                return Scope(
                    children=(summary_msg,),
                    priority=target.priority,
                    id=target.id,
                )
            case _:
                raise TypeError(f"Strategy {type(strategy).__name__} is not reducible")

    def _truncate(self, target: Scope, strategy: Truncate, total: int, budget: int) -> Scope:
        allotment = budget - (total - self.cost(target))
        limit = allotment if strategy.budget is None else min(strategy.budget, allotment)

        children = list(target.children)
        removed = 0
        while children and (removed == 0 or self.cost(children) > limit):
            if strategy.direction == TruncateFrom.START:
                children.pop(0)
            else:
                children.pop()
            removed += 1

        return replace(target, children=tuple(children))
