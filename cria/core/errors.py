"""Typed exception hierarchy for cria."""

from __future__ import annotations

from typing import Any


class CriaError(Exception):
    """Base class for all cria errors.

    Attributes:
        message: Human-readable description.
        scope_id: Id of the offending scope, when one is known.
    """

    def __init__(self, message: str, scope_id: str | None = None) -> None:
        self.message = message
        self.scope_id = scope_id
        if scope_id is not None:
            message = f"[scope {scope_id!r}] {message}"
        super().__init__(message)


class ConstructionError(CriaError):
    """Raised when a prompt tree is malformed (duplicate ids, bad children)."""


class ResolutionError(CriaError):
    """Raised when a store, search or summarizer call fails during resolution."""


class CodecError(CriaError):
    """Raised when a wire payload cannot be parsed.

    Attributes:
        fragment: The offending piece of the payload.
    """

    def __init__(self, message: str, fragment: Any = None) -> None:
        self.fragment = fragment
        if fragment is not None:
            message = f"{message}: {fragment!r}"
        super().__init__(message)


class OverBudgetError(CriaError):
    """Raised on request when fitting could not reach the budget.

    Fitting itself never raises this; the render result reports the overage
    and callers opt in to treating it as an error.
    """

    def __init__(self, over_budget_by: int, budget: int) -> None:
        self.over_budget_by = over_budget_by
        self.budget = budget
        super().__init__(
            f"Prompt exceeds budget of {budget} tokens by {over_budget_by} "
            f"after all reducible scopes were exhausted"
        )


class ConfigError(CriaError):
    """Raised for configuration issues (invalid values, validation failure)."""


class LoadError(CriaError):
    """Raised when a configuration file cannot be read or parsed."""


class ProviderError(CriaError):
    """Raised when a completion request to an LLM endpoint fails."""
