"""Render trace events for cria.

This module defines events emitted while a prompt is resolved, fitted and
encoded. They flow from the render pipeline to an optional TraceSink
(devtools, logs, console) and never influence fitting decisions.

Events are frozen dataclasses following the pattern in core/types.py.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cria.core.interfaces import TraceSink
    from cria.core.types import Message, Node

logger = logging.getLogger(__name__)

__all__ = [
    "TraceEvent",
    "RenderStarted",
    "SummaryResolved",
    "SearchResolved",
    "FitIteration",
    "RenderCompleted",
    "RenderFailed",
    "emit",
]


@dataclass(frozen=True)
class TraceEvent:
    """Base class for render trace events."""

    pass


@dataclass(frozen=True)
class RenderStarted(TraceEvent):
    """A render call began.

    Attributes:
        protocol: Target wire protocol value.
        budget: Token budget, None for unlimited.
        timestamp: Unix timestamp when event was created.
    """

    protocol: str
    budget: int | None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SummaryResolved(TraceEvent):
    """Summary text became available for a scope.

    Attributes:
        scope_id: The summarized scope.
        cached: True if the stored summary was reused.
    """

    scope_id: str
    cached: bool
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SearchResolved(TraceEvent):
    """A vector search scope was materialized.

    Attributes:
        scope_id: Id of the scope, if it has one.
        query: The query sent to the store.
        result_count: Number of matches used.
    """

    scope_id: str | None
    query: str
    result_count: int
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class FitIteration(TraceEvent):
    """One reduction step of the Fit Engine.

    Attributes:
        iteration: 1-based step index.
        scope_id: Id of the reduced scope, if it has one.
        priority: Priority of the reduced scope.
        strategy: Strategy name ("omit", "truncate", "summary").
        replacement: The scope after the step, None when it was omitted.
        tokens_before: Total cost before the step.
        tokens_after: Total cost after the step.
    """

    iteration: int
    scope_id: str | None
    priority: int
    strategy: str
    replacement: Node | None
    tokens_before: int
    tokens_after: int
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class RenderCompleted(TraceEvent):
    """A render finished and produced a payload.

    Attributes:
        protocol: Target wire protocol value.
        before: Layout of the resolved tree, before fitting.
        after: Layout of the fitted tree.
        total_tokens: Cost of the fitted tree.
        budget: Token budget, None for unlimited.
        over_budget_by: Tokens still over budget, 0 when the tree fits.
        iterations: Number of fit steps applied.
        duration_ms: Wall time of the whole render.
    """

    protocol: str
    before: tuple[Message, ...]
    after: tuple[Message, ...]
    total_tokens: int
    budget: int | None
    over_budget_by: int
    iterations: int
    duration_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class RenderFailed(TraceEvent):
    """A render raised before producing a payload.

    Attributes:
        error: The error message.
        scope_id: Offending scope, if known.
    """

    error: str
    scope_id: str | None = None
    timestamp: float = field(default_factory=time.time)


def emit(sink: TraceSink | None, event: TraceEvent) -> None:
    """Deliver an event to a sink without letting the sink affect the render.

    Sink failures are logged and dropped.
    """
    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception as e:
        logger.warning("Trace sink %r failed on %s: %s", sink, type(event).__name__, e)
