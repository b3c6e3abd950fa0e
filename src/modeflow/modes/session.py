"""Per-conversation mode session state.

A ModeSession holds three things:
- current_mode: identity of the active mode
- conversation_state: model-facing history for the current mode only
- presentation_state: one record per completed turn, kept across modes

The three are stored together in one immutable SessionState value.
Turn work happens inside ``session.transaction()``: every operation
mutates a working copy, and the session swaps it in with a single
assignment once the turn has fully completed. If the turn raises or is
cancelled, the working copy is dropped and the session is unchanged.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Optional

from modeflow.core.errors import InvalidSessionStateError
from modeflow.modes.messages import ConversationMessage, PresentationRecord
from modeflow.modes.registry import ModeRegistry

if TYPE_CHECKING:
    from modeflow.integrations.validation import ParameterValidator


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionState:
    """Snapshot of a session. Replaced wholesale, never mutated."""

    current_mode: str
    conversation: tuple[ConversationMessage, ...]
    presentation: tuple[PresentationRecord, ...] = field(default_factory=tuple)


class _SessionOps(ABC):
    """Operations shared by the session and its turn transaction."""

    registry: ModeRegistry

    @abstractmethod
    def _read(self) -> SessionState:
        ...

    @abstractmethod
    def _write(self, state: SessionState) -> None:
        ...

    @property
    def state(self) -> SessionState:
        return self._read()

    @property
    def current_mode(self) -> str:
        return self._read().current_mode

    @property
    def conversation_state(self) -> list[ConversationMessage]:
        return list(self._read().conversation)

    @property
    def presentation_state(self) -> list[PresentationRecord]:
        return list(self._read().presentation)

    def get(self) -> list[ConversationMessage]:
        """Get a copy of the current mode's conversation."""
        return list(self._read().conversation)

    def update(self, new_history: Iterable[ConversationMessage]) -> None:
        """Replace the conversation with an extension of itself.

        Raises:
            InvalidSessionStateError: If the new history drops or rewrites
                any existing message. Resets happen only on mode entry.
        """
        state = self._require_mode()
        new_history = tuple(new_history)
        current = state.conversation

        if new_history[: len(current)] != current:
            raise InvalidSessionStateError(
                "Conversation history is append-only within a mode",
                mode=state.current_mode,
                details={"previous_length": len(current), "new_length": len(new_history)},
            )
        self._write(replace(state, conversation=new_history))

    def append_message(self, message: ConversationMessage) -> None:
        state = self._require_mode()
        self._write(replace(state, conversation=state.conversation + (message,)))

    def append_user_message(self, content: str) -> None:
        """Append a user message to the current mode's conversation."""
        self.append_message(ConversationMessage.user(content))

    def _require_mode(self) -> SessionState:
        state = self._read()
        if not state.current_mode or state.current_mode not in self.registry:
            raise InvalidSessionStateError(
                "Session has no active mode",
                mode=state.current_mode or None,
            )
        return state


class SessionTransaction(_SessionOps):
    """Working copy of a session for the duration of one turn.

    ``fresh_entry`` is True while the conversation is exactly the seed of a
    mode just entered on this turn; any later write clears it.
    """

    def __init__(self, session: "ModeSession"):
        self.session = session
        self.registry = session.registry
        self._working = session.state
        self.fresh_entry = False

    def _read(self) -> SessionState:
        return self._working

    def _write(self, state: SessionState) -> None:
        self._working = state
        self.fresh_entry = False

    def reset_for_entry(
        self,
        mode_identity: str,
        history: Iterable[ConversationMessage],
    ) -> None:
        """Replace mode and conversation together on mode entry.

        This is the only sanctioned way to shrink the conversation. It is
        used by the transition controller.
        """
        history = tuple(history)
        if not history:
            raise InvalidSessionStateError(
                f"Mode {mode_identity!r} produced an empty initial state",
                mode=mode_identity,
            )
        self.registry.resolve(mode_identity)
        self._working = replace(
            self._working,
            current_mode=mode_identity,
            conversation=history,
        )
        self.fresh_entry = True

    def append_presentation(self, record: PresentationRecord) -> None:
        self._working = replace(
            self._working,
            presentation=self._working.presentation + (record,),
        )


class ModeSession(_SessionOps):
    """Mutable state for one conversation.

    The host owns the lifecycle: create one when a conversation starts and
    drop it when the conversation ends.
    """

    def __init__(self, registry: ModeRegistry, state: SessionState, session_id: Optional[str] = None):
        self.id = session_id or str(uuid.uuid4())
        self.registry = registry
        self._state = state
        self._lock = asyncio.Lock()

    @classmethod
    def create(
        cls,
        registry: ModeRegistry,
        initial_mode: str,
        entry_arguments: Any = None,
        validator: Optional["ParameterValidator"] = None,
        session_id: Optional[str] = None,
    ) -> "ModeSession":
        """Create a session seeded by the initial mode's factory.

        Raises:
            UnknownModeError: If the initial mode is not registered
            InvalidParametersError: If the entry arguments are invalid
            InvalidSessionStateError: If the factory returns no messages
        """
        # Lazy import to avoid circular dependency with the transition controller
        from modeflow.modes.transitions import prepare_entry

        registry.freeze()
        identity, history = prepare_entry(registry, initial_mode, entry_arguments, validator)
        if not history:
            raise InvalidSessionStateError(
                f"Mode {identity!r} produced an empty initial state",
                mode=identity,
            )

        session = cls(
            registry,
            SessionState(current_mode=identity, conversation=tuple(history)),
            session_id=session_id,
        )
        logger.info(f"Created session {session.id} in mode {identity}")
        return session

    def _read(self) -> SessionState:
        return self._state

    def _write(self, state: SessionState) -> None:
        if self._lock.locked():
            raise InvalidSessionStateError(
                "A turn is in progress for this session",
                mode=self._state.current_mode,
            )
        self._state = state

    @property
    def busy(self) -> bool:
        """Whether a turn is currently in flight."""
        return self._lock.locked()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SessionTransaction]:
        """Run one turn against a working copy and commit it on success.

        Mutating operations on the same session are serialized by a lock.
        Nothing is committed if the body raises or is cancelled.
        """
        async with self._lock:
            txn = SessionTransaction(self)
            yield txn
            self._commit(txn.state)

    def _commit(self, state: SessionState) -> None:
        if state.current_mode not in self.registry or not state.conversation:
            raise InvalidSessionStateError(
                "Refusing to commit a session state that breaks session invariants",
                mode=state.current_mode,
            )
        self._state = state

    def __repr__(self) -> str:
        return (
            f"ModeSession(id={self.id!r}, mode={self._state.current_mode!r}, "
            f"messages={len(self._state.conversation)}, turns={len(self._state.presentation)})"
        )
