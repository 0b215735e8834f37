"""Trace sink that writes render events to stdlib logging."""

from __future__ import annotations

import logging

from cria.session.events import (
    FitIteration,
    RenderCompleted,
    RenderFailed,
    RenderStarted,
    SearchResolved,
    SummaryResolved,
    TraceEvent,
)

logger = logging.getLogger(__name__)


class LoggingTraceSink:
    """Adapts trace events to log records.

    Progress events are logged at ``level``; failures at WARNING.

    Example:
        logging.basicConfig(level=logging.DEBUG)
        output = await render(tree, sink=LoggingTraceSink())
    """

    def __init__(self, log: logging.Logger | None = None, level: int = logging.DEBUG) -> None:
        self._log = log or logger
        self._level = level

    def emit(self, event: TraceEvent) -> None:
        match event:
            case RenderStarted():
                self._log.log(
                    self._level, "Render started: protocol=%s budget=%s", event.protocol, event.budget
                )
            case SearchResolved():
                self._log.log(
                    self._level,
                    "Vector search %r: %d result(s) for %r",
                    event.scope_id,
                    event.result_count,
                    event.query,
                )
            case SummaryResolved():
                self._log.log(
                    self._level,
                    "Summary %r %s",
                    event.scope_id,
                    "reused from cache" if event.cached else "generated",
                )
            case FitIteration():
                self._log.log(
                    self._level,
                    "Fit %d: %s scope %r (priority %d) %d -> %d tokens",
                    event.iteration,
                    event.strategy,
                    event.scope_id,
                    event.priority,
                    event.tokens_before,
                    event.tokens_after,
                )
            case RenderCompleted():
                self._log.log(
                    self._level,
                    "Render completed: %d tokens, budget %s, over by %d, %d step(s), "
                    "%d -> %d messages in %.1fms",
                    event.total_tokens,
                    event.budget,
                    event.over_budget_by,
                    event.iterations,
                    len(event.before),
                    len(event.after),
                    event.duration_ms,
                )
            case RenderFailed():
                self._log.warning("Render failed: %s", event.error)
            case _:
                self._log.log(self._level, "Trace event: %r", event)
