"""Tool dispatch for model tool selections.

The dispatcher looks the selected tool up in the active mode's resolved
tool table and switches on its kind:

- ToolKind.MODE_ENTRY: enter the target mode, then continue the turn
  under it
- ToolKind.ORDINARY: validate, execute, record the call and its result,
  then either render the result or continue the turn from it

A name missing from the table is a contract violation by the model and
is never retried.
"""

import inspect
import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, Optional

from pydantic import BaseModel

from modeflow.core.errors import (
    InvalidParametersError,
    ModeflowError,
    ToolExecutionError,
    UnknownToolError,
)
from modeflow.integrations.validation import ParameterValidator, PydanticParameterValidator
from modeflow.modes.definition import OrdinaryTool, ResolvedTool, ToolKind
from modeflow.modes.messages import (
    ConversationMessage,
    MessageRole,
    RenderedTurn,
    ToolSelection,
)
from modeflow.modes.registry import ModeRegistry
from modeflow.modes.session import SessionTransaction
from modeflow.modes.transitions import TransitionController


logger = logging.getLogger(__name__)

# Runs the next model step on the same turn
ContinueFn = Callable[[SessionTransaction], Awaitable[RenderedTurn]]


def serialize_tool_result(result: Any) -> str:
    """Embed a tool result in a function message."""
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    if isinstance(result, list) and all(isinstance(r, BaseModel) for r in result):
        return json.dumps([r.model_dump(mode="json") for r in result])
    return json.dumps(result, default=str)


class ToolExecutor:
    """Runs an ordinary tool's handler, sync or async."""

    async def execute(self, tool: OrdinaryTool, arguments: BaseModel) -> Any:
        try:
            result = tool.handler(arguments)
            if inspect.isawaitable(result):
                result = await result
        except ModeflowError:
            raise
        except Exception as e:
            logger.error(f"Tool {tool.name} failed: {e}")
            raise ToolExecutionError(
                f"Tool {tool.name!r} failed: {e}",
                details={"tool": tool.name},
            ) from e
        return result


class ToolDispatcher:
    """Routes a tool selection to mode entry or tool execution."""

    def __init__(
        self,
        registry: ModeRegistry,
        controller: TransitionController,
        executor: Optional[ToolExecutor] = None,
        validator: Optional[ParameterValidator] = None,
    ):
        self.registry = registry
        self.controller = controller
        self.executor = executor or ToolExecutor()
        self.validator = validator or PydanticParameterValidator()

    def lookup(self, session: SessionTransaction, tool_name: str) -> ResolvedTool:
        """Find a tool in the active mode's tool set.

        Raises:
            UnknownToolError: If the active mode does not declare the tool
        """
        tools = self.registry.tools_for(session.current_mode)
        tool = tools.get(tool_name)
        if tool is None:
            raise UnknownToolError(tool_name, mode=session.current_mode)
        return tool

    async def dispatch(
        self,
        session: SessionTransaction,
        selection: ToolSelection,
        continue_turn: ContinueFn,
    ) -> RenderedTurn:
        """Execute the model's tool selection.

        Args:
            session: The turn's working copy of the session
            selection: Tool name and raw arguments chosen by the model
            continue_turn: Runs another model step on this turn

        Returns:
            The rendered output for this turn

        Raises:
            UnknownToolError: If the tool is not in the active mode's set
            InvalidParametersError: If the arguments do not match the schema
            ToolExecutionError: If an ordinary tool's handler raised
        """
        tool = self.lookup(session, selection.name)

        if tool.kind is ToolKind.MODE_ENTRY:
            logger.debug(f"Model selected mode-entry tool {tool.name} in {session.current_mode}")
            self.controller.enter(session, tool.target_mode, selection.arguments)
            return await continue_turn(session)

        return await self._run_ordinary(session, tool, selection, continue_turn)

    async def _run_ordinary(
        self,
        session: SessionTransaction,
        tool: ResolvedTool,
        selection: ToolSelection,
        continue_turn: ContinueFn,
    ) -> RenderedTurn:
        ordinary = tool.ordinary
        mode = session.current_mode

        try:
            arguments = self.validator.validate(ordinary.parameter_schema, selection.arguments)
        except InvalidParametersError as e:
            raise InvalidParametersError(
                f"Invalid arguments for tool {tool.name!r}: {e.message}",
                mode=mode,
                details={"tool": tool.name, **e.details},
            ) from e

        logger.debug(f"Executing tool {tool.name} in {mode}")
        result = await self.executor.execute(ordinary, arguments)

        call_id = selection.id or f"call_{uuid.uuid4().hex[:12]}"
        session.append_message(
            ConversationMessage(
                role=MessageRole.ASSISTANT,
                content=json.dumps(selection.arguments),
                name=tool.name,
                id=call_id,
            )
        )
        session.append_message(
            ConversationMessage(
                role=MessageRole.FUNCTION,
                content=serialize_tool_result(result),
                name=tool.name,
                id=call_id,
            )
        )

        if ordinary.continues_with_model:
            return await continue_turn(session)

        return RenderedTurn(mode=mode, output=ordinary.render(result))
