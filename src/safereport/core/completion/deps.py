"""FastAPI dependency factory for the completion service."""

from typing import Annotated

from fastapi import Depends

from safereport.configs.config import get_llm_config, get_prompt_config
from safereport.configs.system import LLMConfig, PromptConfig
from safereport.core.llm import ChatModelFactory, get_chat_model_factory

from .service import CompletionService, LLMCompletionService


def get_completion_service(
    llm_config: Annotated[LLMConfig, Depends(get_llm_config)],
    prompts: Annotated[PromptConfig, Depends(get_prompt_config)],
    model_factory: Annotated[ChatModelFactory, Depends(get_chat_model_factory)],
) -> CompletionService:
    """Per-request service built from the current config."""
    return LLMCompletionService(llm_config, prompts, model_factory)
