"""Request and response shapes of the completion endpoint.

Wire request::

    {"message": str, "history": [ChatMessage, ...], "isSummaryRequest": bool}

Wire response::

    {"choices": [{"message": {"role": "assistant", "content": str}}]}

Responses are validated before use; anything that does not yield a
non-blank assistant message is a ``MalformedResponseError``.
"""

from enum import Enum
from typing import Any, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from safereport.core.intake.models import ROLE_ASSISTANT, ChatMessage

from .errors import MalformedResponseError


class CompletionMode(str, Enum):
    QUESTION = "question"
    SUMMARY = "summary"


class CompletionRequest(BaseModel):
    """One completion call: prior turns, the new user turn and the mode flag."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message: str = ""
    history: list[ChatMessage] = Field(default_factory=list)
    is_summary_request: bool = Field(default=False, alias="isSummaryRequest")

    @classmethod
    def build(
        cls,
        mode: CompletionMode,
        history: Sequence[ChatMessage],
        message: str,
    ) -> "CompletionRequest":
        return cls(
            message=message,
            history=list(history),
            is_summary_request=mode is CompletionMode.SUMMARY,
        )

    @property
    def mode(self) -> CompletionMode:
        if self.is_summary_request:
            return CompletionMode.SUMMARY
        return CompletionMode.QUESTION

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CompletionMessage(BaseModel):
    role: Literal["assistant"]
    content: str


class CompletionChoice(BaseModel):
    message: CompletionMessage


class CompletionEnvelope(BaseModel):
    """``{choices: [{message: {role, content}}]}``; the first choice is used."""

    choices: list[CompletionChoice]

    @classmethod
    def parse(cls, data: Any) -> "CompletionEnvelope":
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Completion response does not match the expected shape: "
                f"{exc.error_count()} validation error(s)"
            ) from exc

    @classmethod
    def from_message(cls, message: ChatMessage) -> "CompletionEnvelope":
        return cls(
            choices=[
                CompletionChoice(
                    message=CompletionMessage(role=ROLE_ASSISTANT, content=message.content)
                )
            ]
        )

    def first_message(self) -> ChatMessage:
        if not self.choices:
            raise MalformedResponseError("Completion response contained no choices")
        content = self.choices[0].message.content
        if not content.strip():
            raise MalformedResponseError("Completion response content was empty")
        return ChatMessage(role=ROLE_ASSISTANT, content=content)
