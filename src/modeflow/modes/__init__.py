"""modeflow Modes Module.

Organizes an agent's conversation with a model into swappable modes,
each with its own seed history, model config, tools and render contract.
Modes change either from host code or when the model selects another
mode as a tool.

Usage:
    from modeflow.modes.registry import ModeRegistry
    from modeflow.modes.runtime import create_runtime

    # Declare modes once at startup
    registry = ModeRegistry.from_modes([orientation, book_flight])
    runtime = create_runtime(registry)

    # One session per conversation
    session = runtime.create_session("orientation")

    # Host actions
    output = await runtime.submit_turn(session, "I'd like to fly to Hawaii")
    output = await runtime.change_mode(session, "policy_qa", {"question": "Refunds?"})
"""

from modeflow.modes.definition import (
    ModeDefinition,
    ModeEntryTool,
    ModelConfig,
    NoArguments,
    OrdinaryTool,
    ResolvedTool,
    ToolKind,
    ToolRef,
    ToolSpec,
    enters,
)
from modeflow.modes.messages import (
    ConversationMessage,
    MessageRole,
    ModelReply,
    PresentationRecord,
    RenderedTurn,
    ToolSelection,
)
from modeflow.modes.registry import ModeRegistry
from modeflow.modes.session import ModeSession, SessionState, SessionTransaction
from modeflow.modes.transitions import TransitionController, prepare_entry
from modeflow.modes.dispatcher import (
    ToolDispatcher,
    ToolExecutor,
    serialize_tool_result,
)
from modeflow.modes.render import RenderPipeline
from modeflow.modes.runtime import ModeRuntime, create_runtime


__all__ = [
    # Definitions
    "ModeDefinition",
    "ModeEntryTool",
    "ModelConfig",
    "NoArguments",
    "OrdinaryTool",
    "ResolvedTool",
    "ToolKind",
    "ToolRef",
    "ToolSpec",
    "enters",
    # Messages
    "ConversationMessage",
    "MessageRole",
    "ModelReply",
    "PresentationRecord",
    "RenderedTurn",
    "ToolSelection",
    # Registry and session
    "ModeRegistry",
    "ModeSession",
    "SessionState",
    "SessionTransaction",
    # Turn handling
    "ModeRuntime",
    "RenderPipeline",
    "ToolDispatcher",
    "ToolExecutor",
    "TransitionController",
    "create_runtime",
    "prepare_entry",
    "serialize_tool_result",
]
