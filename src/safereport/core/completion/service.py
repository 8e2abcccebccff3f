"""Completion service: transcript + mode in, one assistant message out."""

import logging
import time
from abc import ABC, abstractmethod

import httpx
import openai
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.outputs import ChatGeneration, LLMResult

from safereport.configs.system import CompletionProfile, LLMConfig, PromptConfig
from safereport.core.intake.models import ROLE_ASSISTANT, ROLE_USER, ChatMessage
from safereport.core.llm import ChatModelFactory, build_chat_model
from safereport.core.metrics import COMPLETION_LATENCY_SECONDS, COMPLETION_REQUESTS_TOTAL
from safereport.infra.telemetry import (
    ATTR_COMPLETION_ERROR,
    ATTR_COMPLETION_HISTORY_LEN,
    ATTR_COMPLETION_MODE,
    SPAN_COMPLETION,
    tracer,
)

from .errors import CompletionError, ConfigurationError, TransportError
from .models import CompletionEnvelope, CompletionMode, CompletionRequest

logger = logging.getLogger(__name__)


class CompletionService(ABC):
    """Stateless request/response function over a transcript and a mode.

    Implementations raise only ``CompletionError`` subclasses.
    """

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> ChatMessage:
        """Return the assistant message for *request*."""


def render_system_prompt(prompts: PromptConfig, mode: CompletionMode) -> str:
    profile = profile_for(prompts, mode)
    return profile.system_prompt.replace("{assistant_name}", prompts.assistant_name)


def profile_for(prompts: PromptConfig, mode: CompletionMode) -> CompletionProfile:
    if mode is CompletionMode.SUMMARY:
        return prompts.summary
    return prompts.question


def _to_langchain(message: ChatMessage) -> BaseMessage:
    if message.role == ROLE_ASSISTANT:
        return AIMessage(content=message.content)
    return HumanMessage(content=message.content)


class LLMCompletionService(CompletionService):
    """Calls an OpenAI-compatible provider through LangChain.

    Messages are sent as ``[system prompt for the mode, *history, user]``.
    System entries in the supplied history are dropped; the server owns
    the system prompt.
    """

    def __init__(
        self,
        llm_config: LLMConfig,
        prompts: PromptConfig,
        model_factory: ChatModelFactory = build_chat_model,
    ) -> None:
        self._llm_config = llm_config
        self._prompts = prompts
        self._model_factory = model_factory

    def build_messages(self, request: CompletionRequest) -> list[BaseMessage]:
        messages: list[BaseMessage] = [
            SystemMessage(content=render_system_prompt(self._prompts, request.mode))
        ]
        messages.extend(
            _to_langchain(m)
            for m in request.history
            if m.role in (ROLE_USER, ROLE_ASSISTANT)
        )
        messages.append(HumanMessage(content=request.message))
        return messages

    async def complete(self, request: CompletionRequest) -> ChatMessage:
        mode = request.mode
        with tracer.start_as_current_span(SPAN_COMPLETION) as span:
            span.set_attribute(ATTR_COMPLETION_MODE, mode.value)
            span.set_attribute(ATTR_COMPLETION_HISTORY_LEN, len(request.history))
            start = time.perf_counter()
            try:
                reply = await self._complete(request, mode)
            except CompletionError as exc:
                span.set_attribute(ATTR_COMPLETION_ERROR, exc.code)
                COMPLETION_REQUESTS_TOTAL.labels(mode=mode.value, outcome=exc.code).inc()
                logger.warning(
                    "Completion failed (mode=%s, code=%s): %s",
                    mode.value,
                    exc.code,
                    exc.message,
                )
                raise
            finally:
                COMPLETION_LATENCY_SECONDS.labels(mode=mode.value).observe(
                    time.perf_counter() - start
                )
            COMPLETION_REQUESTS_TOTAL.labels(mode=mode.value, outcome="ok").inc()
            return reply

    async def _complete(
        self, request: CompletionRequest, mode: CompletionMode
    ) -> ChatMessage:
        if not self._llm_config.api_key:
            raise ConfigurationError("Completion provider API key is not configured")

        profile = profile_for(self._prompts, mode)
        model = self._model_factory(self._llm_config, profile.temperature)
        try:
            result = await model.agenerate([self.build_messages(request)])
        except openai.AuthenticationError as exc:
            raise ConfigurationError(
                "Completion provider rejected the configured credentials"
            ) from exc
        except (openai.APIError, httpx.HTTPError) as exc:
            raise TransportError(f"Completion provider request failed: {exc}") from exc

        return _envelope_from_result(result).first_message()


def _envelope_from_result(result: LLMResult) -> CompletionEnvelope:
    generations = result.generations[0] if result.generations else []
    choices = []
    for generation in generations:
        if isinstance(generation, ChatGeneration):
            content = generation.message.content
        else:
            content = generation.text
        choices.append({"message": {"role": ROLE_ASSISTANT, "content": content}})
    return CompletionEnvelope.parse({"choices": choices})
