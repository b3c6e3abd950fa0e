"""Model invocation over an OpenAI-compatible chat completions API.

Every tool a mode exposes, ordinary or mode-entry, is sent as a plain
function tool. The model cannot tell "change mode" from "do something"
except by each tool's description.
"""

import json
import logging
import time
from collections.abc import Sequence
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

from modeflow.core.config import Settings, get_settings
from modeflow.core.errors import ModelInvocationError
from modeflow.modes.definition import ModelConfig, ToolSpec
from modeflow.modes.messages import (
    ConversationMessage,
    MessageRole,
    ModelReply,
    ToolSelection,
)


logger = logging.getLogger(__name__)


def to_openai_message(message: ConversationMessage) -> dict[str, Any]:
    """Convert a conversation message to a chat completions message."""
    if message.role == MessageRole.ASSISTANT and message.name and message.id:
        return {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": message.id,
                    "type": "function",
                    "function": {"name": message.name, "arguments": message.content},
                }
            ],
        }

    if message.role == MessageRole.FUNCTION:
        if message.id:
            return {"role": "tool", "tool_call_id": message.id, "content": message.content}
        # Seeded results have no matching call, so present them as context
        label = message.name or "tool"
        return {"role": "system", "content": f"Result of {label}: {message.content}"}

    return {"role": message.role.value, "content": message.content}


def to_openai_tool(tool: ToolSpec) -> dict[str, Any]:
    """Convert a tool spec to a chat completions function tool."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.json_schema(),
        },
    }


class OpenAIModelInvoker:
    """ModelInvoker backed by ``AsyncOpenAI.chat.completions``.

    Example:
        invoker = OpenAIModelInvoker(AsyncOpenAI(api_key=...))
        reply = await invoker.invoke(mode.model_config, session.get(), tools)
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        settings: Optional[Settings] = None,
    ):
        """Initialize the invoker.

        Args:
            client: Async OpenAI-compatible client
            settings: Defaults for modes without their own model config
        """
        self.client = client
        self.settings = settings or get_settings()

    def _request_options(self, model_config: Optional[ModelConfig]) -> dict[str, Any]:
        config = model_config or ModelConfig()
        return {
            "model": config.model or self.settings.llm_model,
            "temperature": (
                config.temperature
                if config.temperature is not None
                else self.settings.llm_temperature
            ),
            "max_tokens": config.max_tokens or self.settings.llm_max_tokens,
        }

    async def invoke(
        self,
        model_config: Optional[ModelConfig],
        history: Sequence[ConversationMessage],
        tools: Sequence[ToolSpec],
    ) -> ModelReply:
        """Call the model once and classify its reply.

        Raises:
            ModelInvocationError: If the API call fails or the reply is unusable
        """
        options = self._request_options(model_config)
        request: dict[str, Any] = {
            **options,
            "messages": [to_openai_message(m) for m in history],
        }
        if tools:
            request["tools"] = [to_openai_tool(t) for t in tools]

        start_time = time.time()
        try:
            completion = await self.client.chat.completions.create(**request)
        except OpenAIError as e:
            elapsed = (time.time() - start_time) * 1000
            logger.error(f"Model call to {options['model']} failed after {elapsed:.0f}ms: {e}")
            raise ModelInvocationError(
                f"Model call failed: {e}",
                details={"model": options["model"]},
            ) from e

        elapsed = (time.time() - start_time) * 1000
        logger.debug(f"Model call to {options['model']} completed in {elapsed:.0f}ms")

        return self._parse_completion(completion)

    def _parse_completion(self, completion: Any) -> ModelReply:
        if not completion.choices:
            raise ModelInvocationError("Model returned no choices")

        message = completion.choices[0].message
        tool_calls = message.tool_calls or []

        if tool_calls:
            if len(tool_calls) > 1:
                logger.warning(
                    f"Model selected {len(tool_calls)} tools; using only {tool_calls[0].function.name}"
                )
            call = tool_calls[0]
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError as e:
                raise ModelInvocationError(
                    f"Model sent unparsable arguments for {call.function.name}: {e}",
                    details={"tool": call.function.name},
                ) from e
            if not isinstance(arguments, dict):
                raise ModelInvocationError(
                    f"Model sent non-object arguments for {call.function.name}",
                    details={"tool": call.function.name},
                )
            return ModelReply(
                tool_selection=ToolSelection(
                    name=call.function.name,
                    arguments=arguments,
                    id=call.id,
                )
            )

        if not message.content:
            raise ModelInvocationError("Empty response from LLM")

        return ModelReply(text=message.content)
