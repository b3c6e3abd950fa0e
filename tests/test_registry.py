"""Tests for mode definitions and the mode registry."""

import pytest

from modeflow.core.errors import (
    DuplicateModeError,
    InvalidModeDefinitionError,
    RegistryFrozenError,
    UnknownModeError,
)
from modeflow.modes.definition import (
    ModeDefinition,
    ModeEntryTool,
    NoArguments,
    OrdinaryTool,
    ToolKind,
    enters,
)
from modeflow.modes.messages import ConversationMessage
from modeflow.modes.registry import ModeRegistry

from tests.conftest import BookFlightArgs, make_modes


def simple_mode(identity: str, tools=()) -> ModeDefinition:
    return ModeDefinition(
        identity=identity,
        description=f"{identity} mode",
        initial_state=lambda _: [ConversationMessage.system(identity)],
        tools=tools,
    )


class TestModeDefinition:
    """Tests for ModeDefinition."""

    def test_defaults(self):
        """Unset fields get sensible defaults."""
        mode = simple_mode("solo")
        assert mode.parameter_schema is NoArguments
        assert mode.model_config is None
        assert mode.tools == ()
        assert mode.render_text("hi") == "hi"

    def test_tools_stored_as_tuple(self):
        """A list of tools is frozen into a tuple."""
        mode = simple_mode("solo", tools=[enters("other")])
        assert isinstance(mode.tools, tuple)
        assert mode.tools == (ModeEntryTool(mode="other"),)

    def test_is_immutable(self):
        """Definitions cannot be mutated after creation."""
        mode = simple_mode("solo")
        with pytest.raises(AttributeError):
            mode.identity = "changed"

    def test_seed_returns_list(self):
        """seed runs the factory and returns a list."""
        mode = ModeDefinition(
            identity="book",
            description="Book",
            parameter_schema=BookFlightArgs,
            initial_state=lambda a: (ConversationMessage.system(a.request),),
        )
        seeded = mode.seed(BookFlightArgs(request="Hawaii"))
        assert seeded == [ConversationMessage.system("Hawaii")]

    def test_ordinary_tool_continuation_flag(self):
        """Tools without a render contract continue with the model."""
        rendered = OrdinaryTool(name="a", description="", handler=lambda _: 1, render=str)
        continued = OrdinaryTool(name="b", description="", handler=lambda _: 1)
        assert rendered.continues_with_model is False
        assert continued.continues_with_model is True
        assert rendered.kind is ToolKind.ORDINARY
        assert ModeEntryTool(mode="x").kind is ToolKind.MODE_ENTRY


class TestRegistration:
    """Tests for register/resolve."""

    def test_register_and_resolve(self):
        """Registered modes resolve by identity."""
        registry = ModeRegistry()
        mode = registry.register(simple_mode("alpha"))
        assert registry.resolve("alpha") is mode
        assert "alpha" in registry
        assert len(registry) == 1
        assert registry.identities == ["alpha"]

    def test_duplicate_identity(self):
        """Registering the same identity twice fails."""
        registry = ModeRegistry([simple_mode("alpha")])
        with pytest.raises(DuplicateModeError) as exc_info:
            registry.register(simple_mode("alpha"))
        assert exc_info.value.identity == "alpha"

    def test_empty_identity(self):
        """A mode needs a non-empty identity."""
        with pytest.raises(InvalidModeDefinitionError):
            ModeRegistry([simple_mode("")])

    def test_resolve_unknown(self):
        """Resolving an unknown identity fails."""
        registry = ModeRegistry()
        with pytest.raises(UnknownModeError) as exc_info:
            registry.resolve("missing")
        assert exc_info.value.identity == "missing"
        assert exc_info.value.to_failure().details == {"identity": "missing"}

    def test_register_after_freeze(self):
        """The registry is read-only once frozen."""
        registry = ModeRegistry.from_modes([simple_mode("alpha")])
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register(simple_mode("beta"))

    def test_iteration_order(self):
        """Iteration yields definitions in registration order."""
        registry = ModeRegistry([simple_mode("a"), simple_mode("b")])
        assert [m.identity for m in registry] == ["a", "b"]


class TestToolResolution:
    """Tests for tool tables built at freeze time."""

    def test_tool_kinds(self, registry):
        """Mode-entry and ordinary tools are tagged once."""
        tools = registry.tools_for("book_flight")
        assert list(tools) == ["search_flights", "buy_ticket", "orientation"]
        assert tools["search_flights"].kind is ToolKind.ORDINARY
        assert tools["search_flights"].ordinary.name == "search_flights"
        assert tools["orientation"].kind is ToolKind.MODE_ENTRY
        assert tools["orientation"].target_mode == "orientation"

    def test_mode_entry_tool_uses_target_description_and_schema(self, registry):
        """A mode exposed as a tool carries the target's description and schema."""
        tool = registry.tools_for("orientation")["book_flight"]
        assert tool.spec.description == "Book a flight."
        schema = tool.spec.json_schema()
        assert schema["required"] == ["request"]

    def test_cycles_are_allowed(self):
        """Modes can reference each other in a cycle."""
        registry = ModeRegistry.from_modes([
            simple_mode("a", tools=[enters("b")]),
            simple_mode("b", tools=[enters("a")]),
        ])
        assert registry.tools_for("a")["b"].target_mode == "b"
        assert registry.tools_for("b")["a"].target_mode == "a"

    def test_unknown_target_fails_at_freeze(self):
        """A mode-entry tool naming an unknown mode fails on freeze."""
        registry = ModeRegistry([simple_mode("a", tools=[enters("ghost")])])
        with pytest.raises(UnknownModeError) as exc_info:
            registry.freeze()
        assert exc_info.value.identity == "ghost"
        assert exc_info.value.mode == "a"
        assert not registry.frozen

    def test_duplicate_tool_names(self):
        """Two tools with the same name in one mode are rejected."""
        tool = OrdinaryTool(name="b", description="", handler=lambda _: None)
        registry = ModeRegistry([
            simple_mode("a", tools=[tool, enters("b")]),
            simple_mode("b"),
        ])
        with pytest.raises(InvalidModeDefinitionError):
            registry.freeze()

    def test_unsupported_tool(self):
        """Only OrdinaryTool and ModeEntryTool are accepted."""
        registry = ModeRegistry([simple_mode("a", tools=["not-a-tool"])])
        with pytest.raises(InvalidModeDefinitionError):
            registry.freeze()

    def test_tools_for_requires_freeze(self):
        """Tool tables are only built on freeze."""
        registry = ModeRegistry(make_modes())
        with pytest.raises(RegistryFrozenError):
            registry.tools_for("orientation")

    def test_tools_for_unknown_mode(self, registry):
        """Asking for an unknown mode's tools fails."""
        with pytest.raises(UnknownModeError):
            registry.tools_for("missing")

    def test_tool_table_is_read_only(self, registry):
        """Resolved tool tables cannot be modified."""
        tools = registry.tools_for("orientation")
        with pytest.raises(TypeError):
            tools["extra"] = tools["book_flight"]

    def test_freeze_is_idempotent(self, registry):
        """Freezing twice keeps the same tables."""
        before = registry.tools_for("orientation")
        registry.freeze()
        assert registry.tools_for("orientation") is before
