"""Tests for cria.core.types and cria.core.validation."""

import pytest

from cria.core.errors import ConstructionError, CriaError, ResolutionError
from cria.core.types import (
    Last,
    Message,
    Omit,
    Pin,
    PromptTree,
    Reasoning,
    Role,
    Scope,
    Summary,
    Text,
    ToolCall,
    ToolResult,
    Truncate,
    VectorSearch,
    message,
    scope,
)
from cria.store.memory import InMemoryStore


class TestBuilders:
    """Tests for the message() and scope() helpers."""

    def test_message_wraps_strings(self):
        """Bare strings become Text parts."""
        msg = message(Role.USER, "hello ", "world", id="m1")
        assert msg.children == (Text("hello "), Text("world"))
        assert msg.id == "m1"
        assert msg.text == "hello world"

    def test_message_text_skips_non_text_parts(self):
        """Message.text only concatenates Text parts."""
        msg = message(
            Role.ASSISTANT,
            "before",
            Reasoning("thinking"),
            ToolCall("c1", "search", "{}"),
            "after",
        )
        assert msg.text == "beforeafter"

    def test_scope_collects_children(self):
        """scope() keeps children in declaration order."""
        a = message(Role.USER, "a")
        b = message(Role.USER, "b")
        s = scope(a, b, priority=2, strategy=Omit(), id="s")
        assert s.children == (a, b)
        assert s.priority == 2
        assert isinstance(s.strategy, Omit)

    def test_types_are_frozen(self):
        """Tree nodes cannot be mutated in place."""
        s = scope(message(Role.USER, "a"))
        with pytest.raises(AttributeError):
            s.priority = 5  # type: ignore[misc]


class TestPromptTreeValidation:
    """Tests for construction-time validation."""

    def test_valid_tree(self):
        """A well-formed tree constructs without error."""
        tree = PromptTree(
            scope(
                scope(message(Role.SYSTEM, "sys"), id="system"),
                scope(
                    message(Role.USER, "q"),
                    message(Role.ASSISTANT, "a", ToolCall("c1", "lookup", {"q": 1})),
                    Message(Role.TOOL, (ToolResult("c1", "lookup", "result"),)),
                    priority=2,
                    strategy=Truncate(),
                    id="history",
                ),
            ),
            budget=100,
        )
        assert tree.budget == 100
        assert tree.protocol is None

    def test_root_must_be_scope(self):
        """A message root is rejected."""
        with pytest.raises(ConstructionError):
            PromptTree(message(Role.USER, "x"))  # type: ignore[arg-type]

    def test_duplicate_scope_ids(self):
        """Duplicate ids are reported by name."""
        with pytest.raises(ConstructionError) as exc_info:
            PromptTree(scope(scope(id="dup"), scope(id="dup")))
        assert "dup" in str(exc_info.value)

    def test_duplicate_id_across_scope_and_message(self):
        """Messages and scopes share one id space."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(scope(message(Role.USER, "x", id="same"), id="same")))

    def test_empty_id_rejected(self):
        """Ids must be non-empty."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(scope(id="  ")))

    def test_negative_budget(self):
        """Budgets must be non-negative."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(), budget=-1)

    def test_bool_priority_rejected(self):
        """Priority must be a real integer."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(scope(priority=True)))  # type: ignore[arg-type]

    def test_invalid_child_kind(self):
        """Scope children must be messages or scopes."""
        with pytest.raises(ConstructionError) as exc_info:
            PromptTree(Scope(children=("just a string",), id="bad"))  # type: ignore[arg-type]
        assert exc_info.value.scope_id == "bad"

    def test_tool_message_needs_exactly_one_result(self):
        """Tool messages carry one ToolResult."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(Message(Role.TOOL, (Text("oops"),))))
        with pytest.raises(ConstructionError):
            PromptTree(
                scope(
                    Message(
                        Role.TOOL,
                        (ToolResult("a", "t", "1"), ToolResult("b", "t", "2")),
                    )
                )
            )

    def test_user_message_text_only(self):
        """Reasoning and tool calls are assistant-only."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(message(Role.USER, Reasoning("hmm"))))
        with pytest.raises(ConstructionError):
            PromptTree(scope(message(Role.SYSTEM, ToolCall("c", "t", "{}"))))

    def test_assistant_cannot_hold_tool_result(self):
        """Tool results belong in tool messages."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(message(Role.ASSISTANT, ToolResult("c", "t", "x"))))

    def test_summary_requires_id(self):
        """The scope id is the summary cache key."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(scope(strategy=Summary(store=InMemoryStore()))))

    def test_negative_last(self):
        """Last n must be non-negative."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(scope(strategy=Last(-1), id="last")))

    def test_negative_truncate_budget(self):
        """Truncate budget must be non-negative."""
        with pytest.raises(ConstructionError):
            PromptTree(scope(scope(strategy=Truncate(budget=-5), id="t")))

    def test_vector_search_needs_query(self, vector_store_factory):
        """VectorSearch without query text fails at construction."""
        store = vector_store_factory()
        with pytest.raises(ConstructionError) as exc_info:
            PromptTree(scope(scope(strategy=VectorSearch(store=store), id="rag")))
        assert exc_info.value.scope_id == "rag"

    def test_vector_search_query_from_children(self, vector_store_factory):
        """A text child counts as the query."""
        store = vector_store_factory()
        PromptTree(
            scope(scope(message(Role.USER, "find this"), strategy=VectorSearch(store=store)))
        )

    def test_vector_search_limit(self, vector_store_factory):
        """VectorSearch limit must be positive."""
        store = vector_store_factory()
        with pytest.raises(ConstructionError):
            PromptTree(scope(scope(strategy=VectorSearch(store=store, query="q", limit=0))))

    def test_at_most_one_pin(self):
        """Two pins in one tree are rejected."""
        with pytest.raises(ConstructionError) as exc_info:
            PromptTree(scope(scope(strategy=Pin("a")), scope(strategy=Pin("b"))))
        assert "a" in str(exc_info.value) and "b" in str(exc_info.value)


class TestErrors:
    """Tests for the error hierarchy."""

    def test_scope_id_in_message(self):
        """Errors name the offending scope."""
        error = ResolutionError("store unavailable", "history")
        assert error.scope_id == "history"
        assert error.message == "store unavailable"
        assert str(error) == "[scope 'history'] store unavailable"

    def test_hierarchy(self):
        """All errors derive from CriaError."""
        assert issubclass(ConstructionError, CriaError)
        assert issubclass(ResolutionError, CriaError)
