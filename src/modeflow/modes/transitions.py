"""Mode entry.

Every transition funnels through TransitionController.enter, whether the
host asked for it (ModeRuntime.change_mode) or the model selected a
mode-entry tool (ToolDispatcher). Entry resolves the target, validates
the arguments, runs the target's initial state factory once and swaps
mode and conversation together. Presentation state is left alone; the
render pipeline owns it.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel

from modeflow.core.errors import InvalidParametersError
from modeflow.integrations.validation import ParameterValidator, PydanticParameterValidator
from modeflow.modes.messages import ConversationMessage
from modeflow.modes.registry import ModeRegistry
from modeflow.modes.session import SessionTransaction


logger = logging.getLogger(__name__)


def prepare_entry(
    registry: ModeRegistry,
    target_mode: str,
    entry_arguments: Any,
    validator: Optional[ParameterValidator] = None,
) -> tuple[str, list[ConversationMessage]]:
    """Resolve, validate and seed a mode without touching any session.

    Returns:
        Tuple of (mode identity, seed history)

    Raises:
        UnknownModeError: If the target is not registered
        InvalidParametersError: If the arguments do not match the schema
    """
    mode = registry.resolve(target_mode)
    validator = validator or PydanticParameterValidator()

    try:
        parsed: BaseModel = validator.validate(mode.parameter_schema, entry_arguments)
    except InvalidParametersError as e:
        # Surface every validation failure with the target mode attached
        raise InvalidParametersError(
            f"Invalid arguments for mode {mode.identity!r}: {e.message}",
            mode=mode.identity,
            details=e.details,
        ) from e

    return mode.identity, mode.seed(parsed)


class TransitionController:
    """Performs mode entry on a session transaction."""

    def __init__(
        self,
        registry: ModeRegistry,
        validator: Optional[ParameterValidator] = None,
    ):
        self.registry = registry
        self.validator = validator or PydanticParameterValidator()

    def enter(
        self,
        session: SessionTransaction,
        target_mode: str,
        entry_arguments: Any = None,
    ) -> str:
        """Enter ``target_mode`` on the given turn.

        Args:
            session: The turn's working copy of the session
            target_mode: Identity of the mode to enter
            entry_arguments: Raw or parsed arguments for the target's schema

        Returns:
            Identity of the entered mode

        Raises:
            UnknownModeError: If the target is not registered
            InvalidParametersError: If the arguments do not match the schema
        """
        previous = session.current_mode
        identity, history = prepare_entry(
            self.registry, target_mode, entry_arguments, self.validator
        )
        session.reset_for_entry(identity, history)

        logger.info(f"Mode transition: {previous} -> {identity}")
        return identity
