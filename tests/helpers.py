"""Shared fakes for the completion service and the chat model."""

import asyncio
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import ConfigDict

from safereport.configs.system import LLMConfig
from safereport.core.completion import CompletionMode, CompletionRequest, CompletionService
from safereport.core.intake.models import ChatMessage

AUTHORITY_ID = "officer-1"
REPORTER_ID = "reporter-1"
OTHER_REPORTER_ID = "reporter-2"

SUMMARY_TEXT = (
    "Incident Report: A person was followed near the station at 9pm.\n"
    "Authenticity Report: The account is consistent.\n"
    "Facts to check by Authority: station CCTV at 9pm.\n"
    "Authenticity Percentage: 80%"
)


class ScriptedCompletionService(CompletionService):
    """Replays scripted outcomes in order and records every request.

    An outcome is a reply string or an exception instance to raise.
    When the script runs out, question requests get a generic follow-up
    and summary requests get ``SUMMARY_TEXT``.
    """

    def __init__(self, *outcomes: str | BaseException) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[CompletionRequest] = []

    async def complete(self, request: CompletionRequest) -> ChatMessage:
        self.requests.append(request)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
        elif request.mode is CompletionMode.SUMMARY:
            outcome = SUMMARY_TEXT
        else:
            outcome = "What happened next?"
        if isinstance(outcome, BaseException):
            raise outcome
        return ChatMessage(role="assistant", content=outcome)

    @property
    def modes(self) -> list[CompletionMode]:
        return [r.mode for r in self.requests]


class BlockingCompletionService(CompletionService):
    """Waits for ``release`` before answering; ``started`` is set on entry."""

    def __init__(self, reply: str = "When did it happen?") -> None:
        self.reply = reply
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def complete(self, request: CompletionRequest) -> ChatMessage:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return ChatMessage(role="assistant", content=self.reply)


class ModelCallRecorder:
    """Shared log of (temperature, messages) across models built by a factory."""

    def __init__(self, *responses: str | BaseException | None) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[float, list[BaseMessage]]] = []

    def factory(self, config: LLMConfig, temperature: float) -> "RecordingChatModel":
        return RecordingChatModel(recorder=self, temperature=temperature)


class RecordingChatModel(BaseChatModel):
    """Chat model that answers from a ``ModelCallRecorder`` script.

    A ``None`` response produces a result with no generations.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    recorder: Any
    temperature: float = 0.0

    @property
    def _llm_type(self) -> str:
        return "recording"

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> ChatResult:
        self.recorder.calls.append((self.temperature, list(messages)))
        response = (
            self.recorder.responses.pop(0)
            if self.recorder.responses
            else "Where did it happen?"
        )
        if isinstance(response, BaseException):
            raise response
        if response is None:
            return ChatResult(generations=[])
        return ChatResult(
            generations=[ChatGeneration(message=AIMessage(content=response))]
        )
