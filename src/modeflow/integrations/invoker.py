"""Model invocation interface and an in-process scripted implementation."""

import logging
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from modeflow.core.errors import ModelInvocationError
from modeflow.modes.definition import ModelConfig, ToolSpec
from modeflow.modes.messages import ConversationMessage, ModelReply


logger = logging.getLogger(__name__)


class ModelInvoker(Protocol):
    """Calls a generative model for one step of a turn."""

    async def invoke(
        self,
        model_config: Optional[ModelConfig],
        history: Sequence[ConversationMessage],
        tools: Sequence[ToolSpec],
    ) -> ModelReply:
        ...


@dataclass
class RecordedRequest:
    """A request seen by ScriptedModelInvoker."""

    model_config: Optional[ModelConfig]
    history: list[ConversationMessage]
    tool_names: list[str]


ScriptStep = Union[ModelReply, Exception, Callable[[RecordedRequest], ModelReply]]


class ScriptedModelInvoker:
    """Replays queued replies in order. Used for tests and offline demos.

    Each step is a ModelReply, an exception to raise, or a callable that
    receives the recorded request and returns a reply.

    Example:
        invoker = ScriptedModelInvoker([
            ModelReply.from_tool("book_flight", {"request": "flight to Hawaii"}),
            ModelReply.from_text("Where would you like to fly from?"),
        ])
    """

    def __init__(self, steps: Optional[Iterable[ScriptStep]] = None):
        self._steps: deque[ScriptStep] = deque(steps or ())
        self.requests: list[RecordedRequest] = []

    def queue(self, *steps: ScriptStep) -> None:
        self._steps.extend(steps)

    @property
    def remaining(self) -> int:
        return len(self._steps)

    async def invoke(
        self,
        model_config: Optional[ModelConfig],
        history: Sequence[ConversationMessage],
        tools: Sequence[ToolSpec],
    ) -> ModelReply:
        request = RecordedRequest(
            model_config=model_config,
            history=list(history),
            tool_names=[tool.name for tool in tools],
        )
        self.requests.append(request)

        if not self._steps:
            raise ModelInvocationError("Scripted model has no more replies queued")

        step = self._steps.popleft()
        if isinstance(step, Exception):
            raise step
        if isinstance(step, ModelReply):
            return step
        return step(request)
