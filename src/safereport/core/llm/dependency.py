"""LLM factory functions.

The two completion modes differ only in sampling temperature, so the
model is built per call from the shared ``LLMConfig`` plus the mode's
temperature.
"""

from typing import Callable

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from safereport.configs.system import LLMConfig

ChatModelFactory = Callable[[LLMConfig, float], BaseChatModel]


def build_chat_model(config: LLMConfig, temperature: float) -> ChatOpenAI:
    """Create a ChatOpenAI client for one completion mode.

    Retries are disabled by default: a failed turn is rolled back and
    resubmitted by the reporter.
    """
    return ChatOpenAI(
        base_url=config.endpoint,
        api_key=config.api_key,
        model=config.model_name,
        temperature=temperature,
        max_tokens=config.max_tokens,
        timeout=config.model_timeout.total_seconds(),
        top_p=config.top_p,
        max_retries=config.max_retries,
    )


def get_chat_model_factory() -> ChatModelFactory:
    """FastAPI dependency; overridden in tests with a fake model factory."""
    return build_chat_model
