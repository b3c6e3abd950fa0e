"""Error taxonomy for the mode system.

Registry errors (DuplicateModeError, InvalidModeDefinitionError,
RegistryFrozenError) indicate broken mode declarations and are meant to
stop the application at startup. Everything else is a per-turn failure:
the turn is rejected, the session is left exactly as it was, and the
caller gets the exception (or its structured ``to_failure()`` form).
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class TurnFailure(BaseModel):
    """Structured description of a failed turn, suitable for host display."""

    error: str = Field(description="Error class name")
    message: str = Field(description="Human-readable error message")
    mode: Optional[str] = Field(
        default=None, description="Mode that was active when the turn failed"
    )
    details: dict[str, Any] = Field(default_factory=dict)


class ModeflowError(Exception):
    """Base class for all mode system errors."""

    def __init__(
        self,
        message: str,
        *,
        mode: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.mode = mode
        self.details = details or {}

    def to_failure(self) -> TurnFailure:
        """Convert to a structured failure record."""
        return TurnFailure(
            error=type(self).__name__,
            message=self.message,
            mode=self.mode,
            details=self.details,
        )


class UnknownModeError(ModeflowError):
    """A mode identity is not present in the registry."""

    def __init__(self, identity: str, *, mode: Optional[str] = None):
        super().__init__(
            f"Unknown mode: {identity!r}",
            mode=mode,
            details={"identity": identity},
        )
        self.identity = identity


class DuplicateModeError(ModeflowError):
    """A mode identity was registered twice."""

    def __init__(self, identity: str):
        super().__init__(
            f"Mode {identity!r} is already registered",
            details={"identity": identity},
        )
        self.identity = identity


class InvalidModeDefinitionError(ModeflowError):
    """A mode declaration is malformed (e.g. two tools share a name)."""


class RegistryFrozenError(ModeflowError):
    """Registration attempted after the registry was frozen."""


class InvalidParametersError(ModeflowError):
    """Arguments failed validation against a parameter schema."""


class UnknownToolError(ModeflowError):
    """The model selected a tool the active mode does not declare."""

    def __init__(self, tool_name: str, *, mode: Optional[str] = None):
        super().__init__(
            f"Tool {tool_name!r} is not available in mode {mode!r}",
            mode=mode,
            details={"tool": tool_name},
        )
        self.tool_name = tool_name


class InvalidSessionStateError(ModeflowError):
    """A session operation would break the session invariants."""


class ModelInvocationError(ModeflowError):
    """The external model collaborator failed or returned an unusable reply."""


class ToolExecutionError(ModeflowError):
    """An ordinary tool's implementation raised."""


class ModelRoundLimitError(ModeflowError):
    """A single turn needed more model invocations than allowed."""
