"""Conversation and model-reply records.

These are the values that flow between the session, the model invoker
and the render step. ConversationMessage is what the model sees;
PresentationRecord is what the user sees.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MessageRole(str, Enum):
    """Who produced a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    FUNCTION = "function"  # Tool result


class ConversationMessage(BaseModel):
    """A single model-facing conversation message.

    An assistant message carrying ``name`` and ``id`` records a tool call
    (``content`` holds the JSON arguments); the matching ``function``
    message carries the result under the same ``id``.
    """

    model_config = ConfigDict(frozen=True)

    role: MessageRole = Field(description="Message role")
    content: str = Field(description="Message content")
    id: Optional[str] = Field(default=None, description="Tool call id, if any")
    name: Optional[str] = Field(default=None, description="Tool name, if any")

    @classmethod
    def system(cls, content: str) -> "ConversationMessage":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ConversationMessage":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ConversationMessage":
        return cls(role=MessageRole.ASSISTANT, content=content)


class ToolSelection(BaseModel):
    """The model's choice of a single tool with its raw arguments."""

    name: str = Field(description="Selected tool name")
    arguments: dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = Field(default=None, description="Provider call id")


class ModelReply(BaseModel):
    """Result of one model invocation: either text or a tool selection."""

    text: Optional[str] = Field(default=None, description="Plain text reply")
    tool_selection: Optional[ToolSelection] = Field(
        default=None, description="Tool chosen by the model"
    )

    @model_validator(mode="after")
    def _exactly_one(self) -> "ModelReply":
        if (self.text is None) == (self.tool_selection is None):
            raise ValueError("ModelReply needs exactly one of text or tool_selection")
        return self

    @classmethod
    def from_text(cls, text: str) -> "ModelReply":
        return cls(text=text)

    @classmethod
    def from_tool(
        cls,
        name: str,
        arguments: Optional[dict[str, Any]] = None,
        call_id: Optional[str] = None,
    ) -> "ModelReply":
        return cls(
            tool_selection=ToolSelection(name=name, arguments=arguments or {}, id=call_id)
        )


class PresentationRecord(BaseModel):
    """One completed turn's presentation output.

    ``output`` is whatever the render contract produced; it is threaded
    through unmodified.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    mode: str = Field(description="Mode whose render contract produced the output")
    output: Any = Field(description="Opaque presentation output")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class RenderedTurn:
    """Output of one model step before it is recorded on the session."""

    mode: str
    output: Any
