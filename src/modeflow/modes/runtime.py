"""Host-facing action surface.

ModeRuntime wires the registry, transition controller, tool dispatcher
and render pipeline together and exposes the two actions host code
needs:

- submit_turn(session, user_input): append the user's message, then render
- change_mode(session, target_mode, arguments): enter a mode, then render

Each action runs inside one session transaction, so a failed or
cancelled action leaves the session exactly as it was.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from modeflow.core.config import Settings, get_llm_client, get_settings
from modeflow.core.errors import InvalidSessionStateError, ModeflowError
from modeflow.integrations.validation import ParameterValidator, PydanticParameterValidator
from modeflow.modes.dispatcher import ToolDispatcher, ToolExecutor
from modeflow.modes.registry import ModeRegistry
from modeflow.modes.render import RenderPipeline
from modeflow.modes.session import ModeSession
from modeflow.modes.transitions import TransitionController

if TYPE_CHECKING:
    from modeflow.integrations.invoker import ModelInvoker


logger = logging.getLogger(__name__)


class ModeRuntime:
    """Runs turns for any number of independent sessions.

    Sessions share only the frozen registry. Turns against the same
    session are serialized.
    """

    def __init__(
        self,
        registry: ModeRegistry,
        invoker: "ModelInvoker",
        *,
        validator: Optional[ParameterValidator] = None,
        executor: Optional[ToolExecutor] = None,
        max_model_rounds: Optional[int] = None,
    ):
        """Initialize the runtime.

        Freezes the registry: all modes must be registered before this.

        Args:
            registry: Registry with every mode the application declares
            invoker: Model invocation collaborator
            validator: Parameter validator (default: pydantic)
            executor: Ordinary tool executor
            max_model_rounds: Model calls allowed per turn
        """
        registry.freeze()
        self.registry = registry
        self.invoker = invoker
        self.validator = validator or PydanticParameterValidator()

        self.controller = TransitionController(registry, self.validator)
        self.dispatcher = ToolDispatcher(
            registry,
            self.controller,
            executor=executor,
            validator=self.validator,
        )
        self.pipeline = RenderPipeline(
            registry,
            invoker,
            self.dispatcher,
            max_model_rounds=max_model_rounds,
        )

    def create_session(
        self,
        initial_mode: str,
        arguments: Any = None,
        session_id: Optional[str] = None,
    ) -> ModeSession:
        """Start a conversation in ``initial_mode``."""
        return ModeSession.create(
            self.registry,
            initial_mode,
            arguments,
            validator=self.validator,
            session_id=session_id,
        )

    async def submit_turn(self, session: ModeSession, user_input: str) -> Any:
        """Handle one user message.

        Returns:
            The turn's presentation output

        Raises:
            ModeflowError: On any per-turn failure; the session is unchanged
        """
        self._check_session(session)

        try:
            async with session.transaction() as turn:
                turn.append_user_message(user_input)
                output = await self.pipeline.render_mode(turn)
        except ModeflowError as e:
            logger.warning(f"Turn failed for session {session.id}: {type(e).__name__}: {e.message}")
            raise

        logger.debug(f"Turn complete for session {session.id} in mode {session.current_mode}")
        return output

    async def change_mode(
        self,
        session: ModeSession,
        target_mode: str,
        arguments: Any = None,
    ) -> Any:
        """Enter ``target_mode`` from host code and render its first turn.

        Produces the same session state as the model selecting
        ``target_mode`` as a tool with the same arguments.

        Raises:
            ModeflowError: On any per-turn failure; the session is unchanged
        """
        self._check_session(session)

        try:
            async with session.transaction() as turn:
                self.controller.enter(turn, target_mode, arguments)
                output = await self.pipeline.render_mode(turn)
        except ModeflowError as e:
            logger.warning(
                f"Mode change to {target_mode} failed for session {session.id}: "
                f"{type(e).__name__}: {e.message}"
            )
            raise

        return output

    def _check_session(self, session: ModeSession) -> None:
        if session.registry is not self.registry:
            raise InvalidSessionStateError(
                f"Session {session.id} was created against a different registry",
                mode=session.current_mode,
            )


def create_runtime(
    registry: ModeRegistry,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> ModeRuntime:
    """Create a runtime that calls an OpenAI-compatible API.

    Args:
        registry: Registry with every mode the application declares
        api_key: API key for the LLM provider (default: settings)
        base_url: Base URL for the LLM API (default: settings)
        settings: Settings to use (default: environment)

    Returns:
        Configured ModeRuntime

    Raises:
        ValueError: If no API key is given or configured
    """
    # Lazy import to avoid circular dependency with the integrations package
    from modeflow.integrations.openai_invoker import OpenAIModelInvoker

    settings = settings or get_settings()
    client = get_llm_client(api_key=api_key, base_url=base_url, settings=settings)
    return ModeRuntime(
        registry,
        OpenAIModelInvoker(client, settings),
        max_model_rounds=settings.max_model_rounds,
    )
