"""Render trace events and sinks."""

from cria.session.events import (
    FitIteration,
    RenderCompleted,
    RenderFailed,
    RenderStarted,
    SearchResolved,
    SummaryResolved,
    TraceEvent,
    emit,
)
from cria.session.logging import LoggingTraceSink

__all__ = [
    "TraceEvent",
    "RenderStarted",
    "SummaryResolved",
    "SearchResolved",
    "FitIteration",
    "RenderCompleted",
    "RenderFailed",
    "emit",
    "LoggingTraceSink",
]
