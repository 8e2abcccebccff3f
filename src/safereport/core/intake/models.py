"""Conversation session data model.

A ``ConversationSession`` is owned by the surface that opened the intake
flow (one reporting user) and is never persisted; only the summary it
produces is handed on.  Its transcript is append-only from the outside:
the only mutations are ``_append`` and ``_rollback``, both reserved for
the turn controller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from safereport.infra.id_utils import PREFIX_INTAKE, generate_id

Role = Literal["system", "user", "assistant"]

ROLE_SYSTEM: Role = "system"
ROLE_USER: Role = "user"
ROLE_ASSISTANT: Role = "assistant"


class ChatMessage(BaseModel):
    """One transcript entry. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class SessionStatus(str, Enum):
    ACTIVE = "active"
    AWAITING_RESPONSE = "awaiting_response"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Checkpoint:
    """Session state recorded before a speculative append."""

    transcript_len: int
    turn_count: int
    status: SessionStatus


@dataclass(eq=False)
class ConversationSession:
    """Transcript, turn counter and status of one intake conversation."""

    session_id: str = field(default_factory=lambda: generate_id(PREFIX_INTAKE))
    turn_count: int = 0
    status: SessionStatus = SessionStatus.ACTIVE
    summary: str | None = None
    _messages: list[ChatMessage] = field(default_factory=list, repr=False)

    @property
    def transcript(self) -> tuple[ChatMessage, ...]:
        """Read-only view, in insertion order."""
        return tuple(self._messages)

    @property
    def is_completed(self) -> bool:
        return self.status is SessionStatus.COMPLETED

    @property
    def is_busy(self) -> bool:
        return self.status is SessionStatus.AWAITING_RESPONSE

    def visible_transcript(self) -> tuple[ChatMessage, ...]:
        """Transcript without system messages, as shown to the reporter."""
        return tuple(m for m in self._messages if m.role != ROLE_SYSTEM)

    # -- controller-only mutation ------------------------------------------

    def _checkpoint(self) -> Checkpoint:
        return Checkpoint(len(self._messages), self.turn_count, self.status)

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def _rollback(self, checkpoint: Checkpoint) -> None:
        del self._messages[checkpoint.transcript_len :]
        self.turn_count = checkpoint.turn_count
        self.status = checkpoint.status


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one accepted submission.

    ``reply`` is the assistant question added by this turn (``None`` for
    an explicit summary request).  ``summary`` is set once the session
    has completed.
    """

    reply: ChatMessage | None
    turn_count: int
    status: SessionStatus
    summary: str | None = None

    @property
    def completed(self) -> bool:
        return self.status is SessionStatus.COMPLETED
