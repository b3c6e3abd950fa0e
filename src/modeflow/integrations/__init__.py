"""External collaborators for the mode system.

- Model invocation (OpenAI-compatible, or scripted for tests and demos)
- Parameter validation against pydantic schemas
"""

from modeflow.integrations.invoker import (
    ModelInvoker,
    RecordedRequest,
    ScriptedModelInvoker,
)
from modeflow.integrations.openai_invoker import (
    OpenAIModelInvoker,
    to_openai_message,
    to_openai_tool,
)
from modeflow.integrations.validation import (
    ParameterValidator,
    PydanticParameterValidator,
)

__all__ = [
    # Model invocation
    "ModelInvoker",
    "OpenAIModelInvoker",
    "RecordedRequest",
    "ScriptedModelInvoker",
    "to_openai_message",
    "to_openai_tool",
    # Validation
    "ParameterValidator",
    "PydanticParameterValidator",
]
