"""Render pipeline: one model invocation under the active mode.

render_mode builds the request from the active mode (conversation,
model config, tool set), awaits the model, and either hands a tool
selection to the dispatcher or renders plain text with the mode's
render_text. A turn may take several model steps (tool continuations,
mode entries) but records exactly one presentation record.
"""

import functools
import logging
from typing import TYPE_CHECKING, Any, Optional

from modeflow.core.errors import ModeflowError, ModelInvocationError, ModelRoundLimitError
from modeflow.modes.dispatcher import ToolDispatcher
from modeflow.modes.messages import ConversationMessage, ModelReply, PresentationRecord, RenderedTurn
from modeflow.modes.registry import ModeRegistry
from modeflow.modes.session import SessionTransaction

if TYPE_CHECKING:
    from modeflow.integrations.invoker import ModelInvoker


logger = logging.getLogger(__name__)

DEFAULT_MAX_MODEL_ROUNDS = 8


class RenderPipeline:
    """Drives model steps for a turn and records the result."""

    def __init__(
        self,
        registry: ModeRegistry,
        invoker: "ModelInvoker",
        dispatcher: ToolDispatcher,
        max_model_rounds: Optional[int] = None,
    ):
        """Initialize the pipeline.

        Args:
            registry: Frozen mode registry
            invoker: Model invocation collaborator
            dispatcher: Tool dispatcher for tool selections
            max_model_rounds: Model calls allowed per turn
        """
        self.registry = registry
        self.invoker = invoker
        self.dispatcher = dispatcher
        self.max_model_rounds = max_model_rounds or DEFAULT_MAX_MODEL_ROUNDS

    async def render_mode(self, session: SessionTransaction) -> Any:
        """Run the turn's model steps and append one presentation record.

        Returns:
            The presentation output produced by the final render contract
        """
        turn = await self.step(session, rounds=0)
        session.append_presentation(PresentationRecord(mode=turn.mode, output=turn.output))
        return turn.output

    async def step(self, session: SessionTransaction, rounds: int) -> RenderedTurn:
        """Invoke the model once under the active mode and route its reply."""
        if rounds >= self.max_model_rounds:
            raise ModelRoundLimitError(
                f"Turn exceeded {self.max_model_rounds} model calls",
                mode=session.current_mode,
                details={"max_model_rounds": self.max_model_rounds},
            )

        reply = await self._invoke(session)

        if reply.tool_selection is not None:
            return await self.dispatcher.dispatch(
                session,
                reply.tool_selection,
                functools.partial(self.step, rounds=rounds + 1),
            )

        return self.render_text(session, reply.text)

    def render_text(self, session: SessionTransaction, text: str) -> RenderedTurn:
        """Render a plain assistant reply with the mode's contract.

        The reply is kept in the conversation, except right after a mode
        entry: a freshly entered mode's conversation is its seed, and the
        first reply only reaches presentation state.
        """
        mode = self.registry.resolve(session.current_mode)
        if not session.fresh_entry:
            session.append_message(ConversationMessage.assistant(text))
        return RenderedTurn(mode=mode.identity, output=mode.render_text(text))

    async def _invoke(self, session: SessionTransaction) -> ModelReply:
        mode = self.registry.resolve(session.current_mode)
        tools = self.registry.tools_for(mode.identity)

        try:
            return await self.invoker.invoke(
                mode.model_config,
                session.get(),
                [tool.spec for tool in tools.values()],
            )
        except ModeflowError as e:
            if e.mode is None:
                e.mode = mode.identity
            raise
        except Exception as e:
            logger.error(f"Model invocation failed in mode {mode.identity}: {e}")
            raise ModelInvocationError(
                f"Model invocation failed: {e}",
                mode=mode.identity,
            ) from e
