"""Declarative mode and tool definitions.

A ModeDefinition bundles everything one mode needs: how to seed its
conversation, which model to call, which tools to expose and how to
render plain text replies. Definitions are immutable and shared by
every session that enters them.

Tools come in two kinds, resolved once when the registry is frozen:

- OrdinaryTool: a side-effecting capability with its own render contract
- ModeEntryTool: a reference, by identity, to another mode; selecting it
  enters that mode

Referencing modes by identity (not by object) lets modes point at each
other in cycles, e.g. orientation -> book_flight -> orientation.
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from modeflow.modes.messages import ConversationMessage


# Render contract: payload -> opaque presentation output
RenderFn = Callable[[Any], Any]
ToolHandler = Callable[[BaseModel], Union[Any, Awaitable[Any]]]
InitialStateFactory = Callable[[BaseModel], Sequence[ConversationMessage]]


class NoArguments(BaseModel):
    """Parameter schema for modes and tools that take no arguments."""

    model_config = ConfigDict(extra="ignore")


class ModelConfig(BaseModel):
    """Provider selection for a mode. Unset fields fall back to settings."""

    model_config = ConfigDict(frozen=True)

    model: Optional[str] = Field(default=None, description="Model name")
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)


class ToolKind(str, Enum):
    """Tag for the two kinds of tool a mode can expose."""

    ORDINARY = "ordinary"
    MODE_ENTRY = "mode_entry"


@dataclass(frozen=True)
class OrdinaryTool:
    """A side-effecting tool.

    If ``render`` is set, the tool result is rendered directly and the turn
    ends. If ``render`` is None, the result is appended to the conversation
    and the model is invoked again to continue from it.
    """

    name: str
    description: str
    handler: ToolHandler
    parameter_schema: type[BaseModel] = NoArguments
    render: Optional[RenderFn] = None

    kind = ToolKind.ORDINARY

    @property
    def continues_with_model(self) -> bool:
        return self.render is None


@dataclass(frozen=True)
class ModeEntryTool:
    """Exposes another mode, by identity, as a callable tool."""

    mode: str

    kind = ToolKind.MODE_ENTRY


ToolRef = Union[OrdinaryTool, ModeEntryTool]


def enters(mode: str) -> ModeEntryTool:
    """Shorthand for declaring a mode-entry tool."""
    return ModeEntryTool(mode=mode)


def _default_render_text(text: str) -> str:
    return text


@dataclass(frozen=True)
class ModeDefinition:
    """Immutable description of one mode."""

    identity: str
    description: str
    initial_state: InitialStateFactory
    parameter_schema: type[BaseModel] = NoArguments
    model_config: Optional[ModelConfig] = None
    tools: tuple[ToolRef, ...] = field(default_factory=tuple)
    render_text: RenderFn = _default_render_text

    def __post_init__(self):
        # Accept any iterable of tools but store a tuple so the definition stays immutable
        if not isinstance(self.tools, tuple):
            object.__setattr__(self, "tools", tuple(self.tools))

    def seed(self, arguments: BaseModel) -> list[ConversationMessage]:
        """Run the initial state factory for one entry into this mode."""
        return list(self.initial_state(arguments))


@dataclass(frozen=True)
class ToolSpec:
    """Model-facing description of a tool, independent of its kind."""

    name: str
    description: str
    parameter_schema: type[BaseModel]

    def json_schema(self) -> dict[str, Any]:
        return self.parameter_schema.model_json_schema()


@dataclass(frozen=True)
class ResolvedTool:
    """A tool as seen from one mode, with its kind fixed at registry freeze."""

    spec: ToolSpec
    kind: ToolKind
    ordinary: Optional[OrdinaryTool] = None
    target_mode: Optional[str] = None

    @property
    def name(self) -> str:
        return self.spec.name
