"""Tests for cria.display.trace.RichTraceSink."""

import io

import pytest
from rich.console import Console

from cria.context.render import render
from cria.core.types import Omit, PromptTree, Role, message, scope
from cria.display.trace import RichTraceSink
from cria.session.events import (
    FitIteration,
    RenderCompleted,
    RenderFailed,
    SearchResolved,
    SummaryResolved,
)


def make_sink():
    buffer = io.StringIO()
    console = Console(file=buffer, width=120, color_system=None)
    return RichTraceSink(console), buffer


def step(n, scope_id):
    return FitIteration(
        iteration=n,
        scope_id=scope_id,
        priority=3,
        strategy="omit",
        replacement=None,
        tokens_before=100,
        tokens_after=60,
    )


def completed(over_budget_by=0, budget=30):
    return RenderCompleted(
        protocol="anthropic",
        before=(),
        after=(),
        total_tokens=25,
        budget=budget,
        over_budget_by=over_budget_by,
        iterations=1,
        duration_ms=2.0,
    )


class TestRichTraceSink:
    """Tests for console trace output."""

    def test_steps_printed_on_completion(self):
        """Fit steps are buffered and printed as a table with the summary."""
        sink, buffer = make_sink()
        sink.emit(step(1, "context"))
        assert buffer.getvalue() == ""

        sink.emit(completed())
        output = buffer.getvalue()
        assert "Fit steps" in output
        assert "context" in output
        assert "100 -> 60" in output
        assert "25/30 tokens" in output

    def test_steps_reset_between_renders(self):
        """Each render prints only its own steps."""
        sink, buffer = make_sink()
        sink.emit(step(1, "first"))
        sink.emit(completed())
        buffer.truncate(0)
        buffer.seek(0)

        sink.emit(completed())
        assert "first" not in buffer.getvalue()
        assert "Fit steps" not in buffer.getvalue()

    def test_over_budget(self):
        """Overage is called out."""
        sink, buffer = make_sink()
        sink.emit(completed(over_budget_by=7))
        assert "over by 7" in buffer.getvalue()

    def test_unlimited_budget(self):
        sink, buffer = make_sink()
        sink.emit(completed(budget=None))
        assert "25/unlimited tokens" in buffer.getvalue()

    def test_resolution_events(self):
        """Summary and search events print one line each."""
        sink, buffer = make_sink()
        sink.emit(SummaryResolved(scope_id="hist", cached=True))
        sink.emit(SearchResolved(scope_id="rag", query="q", result_count=3))
        output = buffer.getvalue()
        assert "hist from cache" in output
        assert "rag 3 result(s)" in output

    def test_failure(self):
        """Failures print the error and discard buffered steps."""
        sink, buffer = make_sink()
        sink.emit(step(1, "context"))
        sink.emit(RenderFailed(error="store down"))
        sink.emit(completed())
        output = buffer.getvalue()
        assert "render failed: store down" in output
        assert "Fit steps" not in output

    @pytest.mark.asyncio
    async def test_with_render(self, accountant):
        """The sink works end to end with render()."""
        sink, buffer = make_sink()
        root = scope(
            scope(message(Role.SYSTEM, "s" * 5)),
            scope(message(Role.USER, "x" * 40), priority=3, strategy=Omit(), id="context"),
        )
        await render(PromptTree(root, budget=30), accountant=accountant, sink=sink)
        output = buffer.getvalue()
        assert "context" in output
        assert "openai-chat" in output
