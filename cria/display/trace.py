"""Rich console sink for render traces."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from cria.session.events import (
    FitIteration,
    RenderCompleted,
    RenderFailed,
    SearchResolved,
    SummaryResolved,
    TraceEvent,
)


class RichTraceSink:
    """Prints a table of fit steps and a one-line summary per render.

    Fit steps are buffered until the render completes so each render prints
    as one block.

    Example:
        sink = RichTraceSink()
        await render(tree, sink=sink)
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)
        self._steps: list[FitIteration] = []

    def emit(self, event: TraceEvent) -> None:
        match event:
            case FitIteration():
                self._steps.append(event)
            case SummaryResolved():
                source = "cache" if event.cached else "summarizer"
                self.console.print(
                    Text.assemble(("summary ", "dim"), (str(event.scope_id), "cyan"), f" from {source}")
                )
            case SearchResolved():
                self.console.print(
                    Text.assemble(
                        ("search ", "dim"),
                        (str(event.scope_id), "cyan"),
                        f" {event.result_count} result(s)",
                    )
                )
            case RenderCompleted():
                if self._steps:
                    self.console.print(self._steps_table(self._steps))
                self._steps = []
                self.console.print(self._summary_line(event))
            case RenderFailed():
                self._steps = []
                self.console.print(Text(f"render failed: {event.error}", style="bold red"))

    def _steps_table(self, steps: list[FitIteration]) -> Table:
        table = Table(title="Fit steps", show_lines=False)
        table.add_column("#", justify="right")
        table.add_column("Scope")
        table.add_column("Priority", justify="right")
        table.add_column("Strategy")
        table.add_column("Tokens", justify="right")
        for step in steps:
            table.add_row(
                str(step.iteration),
                step.scope_id or "-",
                str(step.priority),
                step.strategy,
                f"{step.tokens_before} -> {step.tokens_after}",
            )
        return table

    def _summary_line(self, event: RenderCompleted) -> Text:
        budget = "unlimited" if event.budget is None else str(event.budget)
        style = "green" if event.over_budget_by == 0 else "yellow"
        line = Text.assemble(
            (f"{event.protocol} ", "bold"),
            (f"{event.total_tokens}/{budget} tokens", style),
            f"  {len(event.before)} -> {len(event.after)} messages"
            f"  {event.iterations} step(s)  {event.duration_ms:.1f}ms",
        )
        if event.over_budget_by:
            line.append(f"  over by {event.over_budget_by}", style="bold yellow")
        return line
